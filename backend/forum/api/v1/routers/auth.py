# forum/api/v1/routers/auth.py
import datetime as dt
import logging
import secrets
from pathlib import Path

from fastapi import APIRouter, Depends, File, UploadFile, status
from starlette.concurrency import run_in_threadpool

from forum.api.v1.deps import get_current_user
from forum.config import settings
from forum.core.errors import AuthenticationError, ValidationError
from forum.core.security import (
    create_access_token,
    generate_one_time_token,
    hash_password,
    verify_one_time_token,
    verify_password,
)
from forum.core.validation import DEFAULT_ALLOWED_MIME_TYPES, uniqueness_check, validate_upload
from forum.models.user import User
from forum.schemas.auth import (
    ChangePasswordIn,
    ForgotPasswordIn,
    LoginIn,
    ProfileUpdateIn,
    RegisterIn,
    ResetPasswordIn,
    VerifyEmailIn,
)

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/auth", tags=["auth"])

_AVATAR_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/gif": ".gif"}


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _as_utc(value: dt.datetime) -> dt.datetime:
    return value if value.tzinfo else value.replace(tzinfo=dt.timezone.utc)


def _token_is_live(hashed: str | None, expires: dt.datetime | None, plain: str) -> bool:
    if not verify_one_time_token(plain, hashed):
        return False
    return expires is not None and _as_utc(expires) > utc_now()


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _remove_upload(upload_root: Path, relative: str) -> None:
    """Delete a stored upload; paths that resolve outside upload_root are left alone."""
    root = upload_root.resolve()
    target = (root / relative).resolve()
    if root not in target.parents:
        logger.warning("[auth] refusing to delete %s outside the upload directory", relative)
        return
    target.unlink(missing_ok=True)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn):
    """
    Register a new user account.

    Username and email must be unique; the password is hashed before storage.

    Returns:
        dict: message, public profile of the new user and a session token

    Raises:
        ValidationError (400): malformed username/email, weak password
        ConflictError (400): username or email already registered
    """
    await uniqueness_check(User, "username")(body.username)
    await uniqueness_check(User, "email")(body.email)
    user = await User.create(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        role="user",
        first_name=body.firstName,
        last_name=body.lastName,
    )
    logger.info("[auth] registered user id=%s username=%s", user.id, user.username)
    return {
        "message": "User registered successfully",
        "user": user.public_profile(),
        "token": create_access_token(user),
    }


@router.post("/login")
async def login(body: LoginIn):
    """
    Authenticate by email and password and issue a session token.

    Unknown email and wrong password produce the same 401 so that the
    endpoint cannot be used to discover registered accounts.

    Raises:
        AuthenticationError (401): invalid credentials or deactivated account
    """
    user = await User.get_or_none(email=body.email)
    if not user or not verify_password(body.password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    user.last_login = utc_now()
    await user.save(update_fields=["last_login"])
    return {
        "message": "Login successful",
        "user": user.public_profile(),
        "token": create_access_token(user),
    }


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    """Public profile of the authenticated user."""
    return {"user": user.public_profile()}


@router.put("/profile")
async def update_profile(body: ProfileUpdateIn, user: User = Depends(get_current_user)):
    """
    Update first name, last name and bio of the authenticated user.
    Only fields present in the request body are changed.
    """
    updates = body.model_dump(exclude_unset=True)
    if "firstName" in updates:
        user.first_name = updates["firstName"]
    if "lastName" in updates:
        user.last_name = updates["lastName"]
    if "bio" in updates:
        user.bio = updates["bio"]
    await user.save()
    return {"message": "Profile updated successfully", "user": user.public_profile()}


@router.put("/change-password")
async def change_password(body: ChangePasswordIn, user: User = Depends(get_current_user)):
    """
    Change the authenticated user's password.

    Raises:
        ValidationError (400): current password is wrong or new password is weak
    """
    if not verify_password(body.currentPassword, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(body.newPassword)
    await user.save()
    return {"message": "Password changed successfully"}


@router.post("/logout")
async def logout():
    """
    Log out. Tokens are stateless, so the client simply discards its token;
    the token itself stays valid until it expires.
    """
    return {"message": "Logged out successfully"}


@router.post("/refresh-token")
async def refresh_token():
    return {"message": "Token refresh endpoint - not implemented"}


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordIn):
    """
    Start the password reset flow.

    A one-time token is generated; only its hash is stored. The answer is the
    same whether or not the email is registered. In development the plain
    token is echoed back so the flow can be exercised without a mail server.
    """
    response: dict = {"message": "If that email is registered, password reset instructions have been sent"}
    user = await User.get_or_none(email=body.email)
    if not user or not user.is_active:
        return response
    plain, hashed = generate_one_time_token()
    user.reset_password_token = hashed
    user.reset_password_expires = utc_now() + dt.timedelta(minutes=settings.reset_token_expire_minutes)
    await user.save(update_fields=["reset_password_token", "reset_password_expires"])
    logger.info("[auth] password reset token issued for user id=%s", user.id)
    if settings.is_development:
        response["resetToken"] = plain
    return response


@router.post("/reset-password")
async def reset_password(body: ResetPasswordIn):
    """
    Complete a password reset with the one-time token.

    Raises:
        ValidationError (400): unknown email, wrong token or expired token
    """
    user = await User.get_or_none(email=body.email)
    if not user or not _token_is_live(user.reset_password_token, user.reset_password_expires, body.token):
        raise ValidationError("Password reset token is invalid or has expired")
    user.password_hash = hash_password(body.newPassword)
    user.reset_password_token = None
    user.reset_password_expires = None
    await user.save()
    logger.info("[auth] password reset completed for user id=%s", user.id)
    return {"message": "Password has been reset successfully"}


@router.post("/verify-email/request")
async def request_email_verification(user: User = Depends(get_current_user)):
    """Issue an email verification token for the authenticated user."""
    if user.is_email_verified:
        return {"message": "Email is already verified"}
    plain, hashed = generate_one_time_token()
    user.email_verification_token = hashed
    user.email_verification_expires = utc_now() + dt.timedelta(minutes=settings.email_token_expire_minutes)
    await user.save(update_fields=["email_verification_token", "email_verification_expires"])
    logger.info("[auth] email verification token issued for user id=%s", user.id)
    response: dict = {"message": "Verification email sent"}
    if settings.is_development:
        response["verificationToken"] = plain
    return response


@router.post("/verify-email")
async def verify_email(body: VerifyEmailIn):
    """
    Mark an account's email as verified.

    Raises:
        ValidationError (400): unknown email, wrong token or expired token
    """
    user = await User.get_or_none(email=body.email)
    if not user or not _token_is_live(user.email_verification_token, user.email_verification_expires, body.token):
        raise ValidationError("Verification token is invalid or has expired")
    user.is_email_verified = True
    user.email_verification_token = None
    user.email_verification_expires = None
    await user.save()
    return {"message": "Email verified successfully", "user": user.public_profile()}


@router.post("/avatar")
async def upload_avatar(file: UploadFile = File(...), user: User = Depends(get_current_user)):
    """
    Upload a profile picture (JPEG, PNG or GIF, limited by MAX_UPLOAD_BYTES).

    Raises:
        ValidationError (400): wrong file type or file too large
    """
    limit = settings.max_upload_bytes
    # Declared size first, then the bytes actually received (never more than limit + 1)
    validate_upload(file, allowed_types=DEFAULT_ALLOWED_MIME_TYPES, max_size=limit)
    content = await file.read(limit + 1)
    validate_upload(
        {"mimetype": file.content_type, "size": len(content)},
        allowed_types=DEFAULT_ALLOWED_MIME_TYPES,
        max_size=limit,
    )

    upload_root = Path(settings.upload_dir)
    filename = f"{user.id}_{secrets.token_hex(4)}{_AVATAR_EXTENSIONS[file.content_type]}"
    await run_in_threadpool(_write_file, upload_root / "avatars" / filename, content)

    previous = user.avatar
    user.avatar = f"avatars/{filename}"
    await user.save(update_fields=["avatar"])
    if previous and previous != user.avatar:
        await run_in_threadpool(_remove_upload, upload_root, previous)
    return {"message": "Avatar updated successfully", "user": user.public_profile()}
