# forum/models/category.py
"""
Database model for post categories.
Categories form an optional hierarchy through `parent`; posts reference exactly
one category.
"""
from tortoise import fields, models
from tortoise.functions import Count

from forum.models.ids import new_id

class Category(models.Model):
    """
    Category database model.

    Relationships:
    - Optional parent Category (self reference, set to null if the parent is deleted)
    - Has many Posts (via related_name="posts"); deleting a category that still
      has posts is refused by the database (RESTRICT)
    """
    id = fields.CharField(max_length=24, pk=True, default=new_id)
    name = fields.CharField(max_length=50, unique=True)
    slug = fields.CharField(max_length=64, unique=True, index=True)  # Derived from name
    description = fields.CharField(max_length=500, null=True)
    color = fields.CharField(max_length=7, default="#6c757d")  # Hex color (#RRGGBB)
    icon = fields.CharField(max_length=50, null=True)
    is_active = fields.BooleanField(default=True, index=True)
    parent = fields.ForeignKeyField(
        "models.Category",
        related_name="children",
        null=True,
        on_delete=fields.SET_NULL,
    )
    order = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "categories"
        ordering = ["order", "name"]

    def __str__(self) -> str:
        return self.name

    @classmethod
    def active(cls):
        """Active categories, sorted for display, annotated with their post count."""
        return (
            cls.filter(is_active=True)
            .annotate(post_count=Count("posts"))
            .order_by("order", "name")
        )

    def summary(self) -> dict:
        return {"id": str(self.id), "name": self.name, "slug": self.slug}

    def to_dict(self, post_count: int | None = None) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "isActive": self.is_active,
            "parent": self.parent_id,
            "order": self.order,
            "postCount": post_count if post_count is not None else getattr(self, "post_count", None),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
