# forum/core/security.py
"""
Security module for authentication and authorization.
Handles password hashing, session (JWT) token issue/verification and
one-time tokens used for password reset and email verification.
"""
import datetime as dt
import hashlib
import hmac
import logging
import secrets

import jwt  # PyJWT
from passlib.context import CryptContext

from forum.config import settings
from forum.core.errors import ExpiredTokenError, InvalidTokenError, TokenGenerationError

logger = logging.getLogger("uvicorn.error")

# Password hashing context
# Argon2 is a modern, secure password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

# JWT configuration
JWT_SECRET = settings.jwt_secret  # Secret key for JWT signing (use strong secret in production)
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes  # Default: 7 days
JWT_ISSUER = settings.jwt_issuer
JWT_AUDIENCE = settings.jwt_audience
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)

def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain, hashed)

def create_access_token(user) -> str:
    """
    Issue a signed session token for a user.

    The token embeds the user's id, email, username and role so that the
    gateway can make RBAC decisions, plus issuer/audience and expiry.

    Args:
        user: Object exposing id, email, username and role (a User row)

    Returns:
        Encoded JWT token string

    Raises:
        TokenGenerationError: If signing fails for any reason. The cause is
            logged and never exposed to the caller.
    """
    try:
        if not JWT_SECRET:
            raise ValueError("JWT secret is not configured")
        now = dt.datetime.now(dt.timezone.utc)
        payload = {
            "sub": str(user.id),  # Subject (user ID)
            "email": user.email,
            "username": user.username,
            "role": user.role,    # User role for RBAC
            "iss": JWT_ISSUER,
            "aud": JWT_AUDIENCE,
            "iat": now,
            "exp": now + dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        }
        return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)
    except (jwt.PyJWTError, AttributeError, TypeError, ValueError) as exc:
        logger.error("[security] token generation failed: %r", exc)
        raise TokenGenerationError() from None

def decode_access_token(token: str) -> dict:
    """
    Verify a session token's signature, expiry, issuer and audience.

    Returns:
        Decoded token payload dictionary

    Raises:
        ExpiredTokenError: If the token has expired
        InvalidTokenError: If the token is malformed, tampered with or
            issued for another audience
    """
    try:
        return jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALG],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError as exc:
        logger.info("[security] expired token: %s", exc)
        raise ExpiredTokenError() from exc
    except jwt.PyJWTError as exc:
        logger.info("[security] invalid token: %s", exc)
        raise InvalidTokenError() from exc

def decode_unverified(token: str) -> dict:
    """
    Read a token's claims without checking signature or expiry (debugging only).

    Raises:
        InvalidTokenError: If the token cannot be parsed
    """
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise InvalidTokenError() from exc

def is_token_expired(token: str) -> bool:
    """
    True if the token is past its expiry.
    Unparseable tokens and tokens without an `exp` claim count as expired.
    """
    try:
        claims = decode_unverified(token)
    except InvalidTokenError:
        return True
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return True
    return exp < dt.datetime.now(dt.timezone.utc).timestamp()

def get_token_expiration(token: str) -> dt.datetime | None:
    """Expiry instant of a token (UTC), or None if unparseable or without `exp`."""
    try:
        claims = decode_unverified(token)
    except InvalidTokenError:
        return None
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return dt.datetime.fromtimestamp(exp, tz=dt.timezone.utc)

# ---------- one-time tokens (password reset, email verification) ----------

def hash_one_time_token(plain: str) -> str:
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()

def generate_one_time_token() -> tuple[str, str]:
    """
    Generate a high-entropy one-time token.

    Returns:
        (plain, hashed): the plain value is delivered out-of-band to the user,
        only the SHA-256 hex digest is persisted.
    """
    plain = secrets.token_hex(32)
    return plain, hash_one_time_token(plain)

def verify_one_time_token(plain: str, hashed: str | None) -> bool:
    if not plain or not hashed:
        return False
    return hmac.compare_digest(hash_one_time_token(plain), hashed)
