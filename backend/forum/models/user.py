# forum/models/user.py
"""
Database model for users.
Represents a user account in the system, containing authentication credentials,
profile information, and role-based access control.
"""
from tortoise import fields, models

from forum.models.ids import new_id

class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many Posts (one-to-many, via related_name="posts")
    - Likes many Posts (many-to-many, via related_name="liked_posts")
    - Has many Comments (one-to-many, via related_name="comments")

    Security:
    - Password is stored as a hash (never store plain text passwords)
    - One-time token columns hold SHA-256 digests, never the plain token
    - Username and email must be unique across all users
    - Role determines access level (user vs admin)
    """
    id = fields.CharField(max_length=24, pk=True, default=new_id)  # 24-hex record identifier
    username = fields.CharField(max_length=30, unique=True, index=True)  # Login/display name
    email = fields.CharField(max_length=256, unique=True, index=True)  # Stored lowercased
    password_hash = fields.CharField(max_length=255)  # Argon2 hash, never serialized
    role = fields.CharField(max_length=16, default="user")  # "user" or "admin"
    is_active = fields.BooleanField(default=True)  # Deactivated accounts cannot authenticate

    # Embedded profile
    first_name = fields.CharField(max_length=50, null=True)
    last_name = fields.CharField(max_length=50, null=True)
    bio = fields.CharField(max_length=500, null=True)
    avatar = fields.CharField(max_length=512, null=True)  # Path under the upload directory

    is_email_verified = fields.BooleanField(default=False)
    reset_password_token = fields.CharField(max_length=64, null=True)
    reset_password_expires = fields.DatetimeField(null=True)
    email_verification_token = fields.CharField(max_length=64, null=True)
    email_verification_expires = fields.DatetimeField(null=True)

    last_login = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"

    def __str__(self) -> str:
        return self.username

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def profile(self) -> dict:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "bio": self.bio,
            "avatar": self.avatar,
        }

    def public_profile(self) -> dict:
        """
        User record without credentials.
        This is the only shape in which a user leaves the API.
        """
        return {
            "id": str(self.id),
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "isActive": self.is_active,
            "isEmailVerified": self.is_email_verified,
            "profile": self.profile(),
            "fullName": self.full_name,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def author_summary(self) -> dict:
        """Projection embedded in posts and comments."""
        return {
            "id": str(self.id),
            "username": self.username,
            "profile": {"firstName": self.first_name, "lastName": self.last_name},
        }
