# forum/core/bootstrap.py
"""
Start-up tasks run once the database is connected.
Currently: make sure the forum has an administrator on a fresh install.
"""
import logging

from forum.config import settings
from forum.core.security import hash_password
from forum.core.validation import is_valid_email
from forum.models.user import User

logger = logging.getLogger("uvicorn.error")


async def free_username(wanted: str) -> str:
    """`wanted`, or `wanted2`, `wanted3`, ... whichever is not taken yet."""
    candidate, n = wanted, 1
    while await User.filter(username=candidate).exists():
        n += 1
        candidate = f"{wanted}{n}"
    return candidate


async def ensure_default_admin() -> User | None:
    """
    Create the default admin from ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD
    when the forum has no admin yet.

    Nothing is created if an admin already exists, if ADMIN_PASSWORD is empty
    (no weak default password), or if ADMIN_EMAIL already belongs to a member.

    Returns:
        The new admin, or None
    """
    if await User.filter(role="admin").exists():
        return None
    if not settings.admin_password:
        logger.warning("[bootstrap] no admin account and ADMIN_PASSWORD is empty; not creating one")
        return None

    email = settings.admin_email.strip().lower()
    if not is_valid_email(email):
        logger.warning("[bootstrap] ADMIN_EMAIL %r is not a valid address; not creating an admin", email)
        return None
    if await User.filter(email=email).exists():
        logger.warning("[bootstrap] ADMIN_EMAIL %s is used by a member account; not creating an admin", email)
        return None

    admin = await User.create(
        username=await free_username(settings.admin_username),
        email=email,
        password_hash=hash_password(settings.admin_password),
        role="admin",
        is_email_verified=True,
    )
    logger.warning("[bootstrap] created default admin username=%s email=%s id=%s",
                   admin.username, admin.email, admin.id)
    return admin
