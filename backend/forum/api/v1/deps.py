import logging

from fastapi import Depends, Header

from forum.core.errors import AuthenticationError, AuthorizationError
from forum.core.security import decode_access_token
from forum.models.user import User

logger = logging.getLogger("uvicorn.error")


def extract_bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


async def resolve_user(token: str) -> User:
    """
    Turn a bearer token into an active user.

    Raises:
        InvalidTokenError / ExpiredTokenError: token fails verification (401)
        AuthenticationError: no such user, or the account is deactivated (401)
    """
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    user = await User.get_or_none(id=user_id) if user_id else None
    if not user:
        raise AuthenticationError("Invalid token. User not found.")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated.")
    return user


async def get_current_user(
    authorization: str | None = Header(default=None),
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Request states: no token -> token extracted -> token verified -> user resolved.

    Raises:
        AuthenticationError (401): "Access denied. No token provided."
        InvalidTokenError (401): "Invalid token."
        ExpiredTokenError (401): "Token expired."
        AuthenticationError (401): user not found / account deactivated

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": str(user.id)}
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Access denied. No token provided.")
    return await resolve_user(token)


async def get_optional_user(
    authorization: str | None = Header(default=None),
) -> User | None:
    """
    Like `get_current_user`, but any failure yields an anonymous caller (None).
    The failure cause is logged at debug level for auditing.
    """
    token = extract_bearer_token(authorization)
    if not token:
        return None
    try:
        return await resolve_user(token)
    except AuthenticationError as exc:
        logger.debug("[auth] optional auth ignored credentials: %s (%s)", exc.message, type(exc).__name__)
        return None


async def require_admin(current: User = Depends(get_current_user)) -> User:
    """
    FastAPI dependency to ensure the current user is an administrator.

    Raises:
        AuthorizationError (403): If user is not an admin
        AuthenticationError (401): If user is not authenticated (from get_current_user)
    """
    if getattr(current, "role", "user") != "admin":
        raise AuthorizationError("Access denied. Admin privileges required.")
    return current
