# forum/schemas/category.py
"""
Pydantic schemas for category endpoints.
"""
from typing import Annotated, Optional

from pydantic import AfterValidator, Field

from forum.core.validation import is_valid_identifier
from forum.schemas.base import SanitizedModel


def _parent_id(value: str) -> str:
    if not is_valid_identifier(value):
        raise ValueError("Invalid parent category ID")
    return value


ParentId = Annotated[str, AfterValidator(_parent_id)]
HexColor = Annotated[str, Field(pattern=r"^#[0-9A-Fa-f]{6}$")]


class CategoryCreateIn(SanitizedModel):
    name: str = Field(min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    color: HexColor = "#6c757d"
    icon: Optional[str] = Field(default=None, max_length=50)
    parent: Optional[ParentId] = None
    order: int = 0
    isActive: bool = True


class CategoryUpdateIn(SanitizedModel):
    """All fields optional - only provided fields will be updated."""
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[HexColor] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    parent: Optional[ParentId] = None
    order: Optional[int] = None
    isActive: Optional[bool] = None
