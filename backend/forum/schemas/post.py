# forum/schemas/post.py
"""
Pydantic schemas for post and comment endpoints.
"""
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, Field

from forum.core.validation import is_valid_identifier
from forum.schemas.base import SanitizedModel

PostStatus = Literal["draft", "published", "archived"]


def _identifier(value: str) -> str:
    if not is_valid_identifier(value):
        raise ValueError("Valid category ID is required")
    return value


CategoryId = Annotated[str, AfterValidator(_identifier)]
Tag = Annotated[str, Field(max_length=50)]


class PostCreateIn(SanitizedModel):
    """
    Request model for creating a post.
    The author is always the caller; the slug is derived from the title.
    """
    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=10, max_length=10000)
    category: CategoryId
    status: PostStatus = "draft"
    tags: List[Tag] = Field(default_factory=list)
    featured: bool = False
    metaDescription: Optional[str] = Field(default=None, max_length=300)
    metaKeywords: List[Tag] = Field(default_factory=list)


class PostUpdateIn(SanitizedModel):
    """All fields optional - only provided fields will be updated."""
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    content: Optional[str] = Field(default=None, min_length=10, max_length=10000)
    category: Optional[CategoryId] = None
    status: Optional[PostStatus] = None
    tags: Optional[List[Tag]] = None
    featured: Optional[bool] = None
    metaDescription: Optional[str] = Field(default=None, max_length=300)
    metaKeywords: Optional[List[Tag]] = None


class CommentIn(SanitizedModel):
    content: str = Field(min_length=1, max_length=1000)
