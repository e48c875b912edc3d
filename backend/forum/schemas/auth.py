# forum/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.
Defines request models for registration, login, profile and password flows.
"""
from typing import Annotated, Optional

from pydantic import AfterValidator, Field, field_validator

from forum.core.validation import USERNAME_PATTERN, is_strong_password, is_valid_email
from forum.schemas.base import SanitizedModel

PASSWORD_RULE = "Password must be at least 6 characters long and contain at least one lowercase letter, one uppercase letter, and one number"


def _email(value: str) -> str:
    if not is_valid_email(value):
        raise ValueError("Please enter a valid email address")
    return value.lower()


def _strong_password(value: str) -> str:
    if not is_strong_password(value):
        raise ValueError(PASSWORD_RULE)
    return value


Email = Annotated[str, AfterValidator(_email)]
StrongPassword = Annotated[str, AfterValidator(_strong_password)]


class RegisterIn(SanitizedModel):
    """
    Request model for user registration.
    Password strength is checked here; hashing happens in the route.
    """
    raw_fields = ("password",)

    username: str = Field(min_length=3, max_length=30)
    email: Email
    password: StrongPassword
    firstName: Optional[str] = Field(default=None, max_length=50)
    lastName: Optional[str] = Field(default=None, max_length=50)

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        if not USERNAME_PATTERN.match(value):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return value


class LoginIn(SanitizedModel):
    """Request model for login (email + password)."""
    raw_fields = ("password",)

    email: Email
    password: str = Field(min_length=1)


class ProfileUpdateIn(SanitizedModel):
    """All fields optional; only provided fields are updated."""
    firstName: Optional[str] = Field(default=None, max_length=50)
    lastName: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)


class ChangePasswordIn(SanitizedModel):
    raw_fields = ("currentPassword", "newPassword")

    currentPassword: str = Field(min_length=1)
    newPassword: StrongPassword


class ForgotPasswordIn(SanitizedModel):
    email: Email


class ResetPasswordIn(SanitizedModel):
    """Completes a password reset with the one-time token sent to the user."""
    raw_fields = ("token", "newPassword")

    email: Email
    token: str = Field(min_length=1)
    newPassword: StrongPassword


class VerifyEmailIn(SanitizedModel):
    raw_fields = ("token",)

    email: Email
    token: str = Field(min_length=1)
