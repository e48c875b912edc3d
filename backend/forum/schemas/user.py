# forum/schemas/user.py
"""
Pydantic schemas for user management endpoints.
"""
from typing import Literal, Optional

from pydantic import Field

from forum.schemas.base import SanitizedModel


class UserUpdateIn(SanitizedModel):
    """
    Request model for updating a user.
    All fields are optional; role and isActive may only be set by an admin.
    """
    firstName: Optional[str] = Field(default=None, max_length=50)
    lastName: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    role: Optional[Literal["user", "admin"]] = None
    isActive: Optional[bool] = None
