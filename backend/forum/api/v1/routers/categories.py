# forum/api/v1/routers/categories.py
import logging

from fastapi import APIRouter, Depends, status

from forum.api.v1.deps import get_current_user
from forum.core.errors import NotFoundError, ValidationError
from forum.core.policy import authorize
from forum.core.slugs import unique_slug
from forum.core.validation import is_valid_identifier, refuse_nulls, uniqueness_check
from forum.models.category import Category
from forum.models.user import User
from forum.schemas.category import CategoryCreateIn, CategoryUpdateIn

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/categories", tags=["categories"])


async def get_category_or_404(category_id: str) -> Category:
    category = await Category.get_or_none(id=category_id) if is_valid_identifier(category_id) else None
    if not category:
        raise NotFoundError("Category not found")
    return category


async def resolve_parent(parent_id: str | None, child: Category | None = None) -> Category | None:
    """
    Load the parent category by id (None clears the parent).

    When `child` is given, the new parent must not be `child` itself or one
    of its descendants.

    Raises:
        NotFoundError (404): parent does not exist
        ValidationError (400): the assignment would create a cycle
    """
    if parent_id is None:
        return None
    if child is not None and parent_id == child.id:
        raise ValidationError("A category cannot be its own parent")
    parent = await Category.get_or_none(id=parent_id)
    if not parent:
        raise NotFoundError("Parent category not found")
    if child is not None:
        ancestor_id, seen = parent.parent_id, {parent.id}
        while ancestor_id and ancestor_id not in seen:
            if ancestor_id == child.id:
                raise ValidationError("A category cannot be moved under one of its subcategories")
            seen.add(ancestor_id)
            ancestor = await Category.get_or_none(id=ancestor_id)
            ancestor_id = ancestor.parent_id if ancestor else None
    return parent


@router.get("", response_model=dict)
async def list_categories():
    """Active categories ordered by `order` then name, each with its post count."""
    rows = await Category.active()
    return {"items": [c.to_dict() for c in rows]}


@router.get("/{category_id}", response_model=dict)
async def get_category(category_id: str):
    category = await get_category_or_404(category_id)
    post_count = await category.posts.all().count()
    return {"category": category.to_dict(post_count=post_count)}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=dict)
async def create_category(body: CategoryCreateIn, user: User = Depends(get_current_user)):
    """
    Create a category (admin only). The slug is derived from the name.

    Raises:
        AuthorizationError (403): caller is not an admin
        ConflictError (400): name already used
        NotFoundError (404): parent does not exist
    """
    authorize(user, "category", "create")
    await uniqueness_check(Category, "name")(body.name)
    parent = await resolve_parent(body.parent)
    category = await Category.create(
        name=body.name,
        slug=await unique_slug(Category, body.name, fallback="category"),
        description=body.description,
        color=body.color,
        icon=body.icon,
        parent=parent,
        order=body.order,
        is_active=body.isActive,
    )
    logger.info("[categories] created category id=%s name=%s", category.id, category.name)
    return {"message": "Category created successfully", "category": category.to_dict(post_count=0)}


@router.put("/{category_id}", response_model=dict)
async def update_category(category_id: str, body: CategoryUpdateIn, user: User = Depends(get_current_user)):
    authorize(user, "category", "update")
    category = await get_category_or_404(category_id)
    updates = body.model_dump(exclude_unset=True)
    refuse_nulls(updates, ("name", "color", "order", "isActive"))

    if "name" in updates and updates["name"] != category.name:
        await uniqueness_check(Category, "name", exclude_id=category.id)(updates["name"])
        category.name = updates["name"]
        category.slug = await unique_slug(Category, category.name, exclude_id=category.id, fallback="category")
    if "parent" in updates:
        category.parent = await resolve_parent(updates["parent"], child=category)
    for field, column in (("description", "description"), ("color", "color"), ("icon", "icon"),
                          ("order", "order"), ("isActive", "is_active")):
        if field in updates:
            setattr(category, column, updates[field])

    await category.save()
    post_count = await category.posts.all().count()
    return {"message": "Category updated successfully", "category": category.to_dict(post_count=post_count)}


@router.delete("/{category_id}", response_model=dict)
async def delete_category(category_id: str, user: User = Depends(get_current_user)):
    """
    Delete a category (admin only).

    Posts are never deleted along with their category: a category that still
    has posts is refused with 400 and should be deactivated instead.
    """
    authorize(user, "category", "delete")
    category = await get_category_or_404(category_id)
    if await category.posts.all().exists():
        raise ValidationError("Category still has posts; deactivate it instead")
    await category.delete()
    logger.info("[categories] deleted category id=%s", category_id)
    return {"message": "Category deleted successfully"}
