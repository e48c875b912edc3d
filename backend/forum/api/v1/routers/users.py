# forum/api/v1/routers/users.py
import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from tortoise.expressions import Q
from tortoise.functions import Count
from tortoise.transactions import in_transaction

from forum.api.v1.deps import get_current_user, require_admin
from forum.api.v1.pagination import paginate
from forum.core.errors import NotFoundError, ValidationError
from forum.core.policy import authorize
from forum.core.validation import is_valid_identifier, normalize_search_query, resolve_pagination
from forum.models.post import POST_RELATIONS, POST_STATUSES, Comment, Post
from forum.models.user import User
from forum.schemas.user import UserUpdateIn

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/users", tags=["users"])


def serialize_user(user: User) -> dict:
    return user.public_profile()


def serialize_post(post: Post) -> dict:
    return post.to_dict()


async def get_user_or_404(user_id: str) -> User:
    user = await User.get_or_none(id=user_id) if is_valid_identifier(user_id) else None
    if not user:
        raise NotFoundError("User not found")
    return user


async def post_totals(author_id: str, **filters) -> dict:
    """Post, view and like totals over one author's posts."""
    rows = await (
        Post.filter(author_id=author_id, **filters)
        .annotate(like_total=Count("likes"))
        .values("id", "views", "like_total")
    )
    return {
        "totalPosts": len(rows),
        "totalViews": sum(row["views"] or 0 for row in rows),
        "totalLikes": sum(row["like_total"] or 0 for row in rows),
    }


@router.get("", response_model=dict)
async def list_users(
    page: str | None = Query(None),
    limit: str | None = Query(None),
    search: str | None = Query(None),
    role: Literal["user", "admin"] | None = Query(None),
    admin: User = Depends(require_admin),
):
    """
    List users (admin only), newest first.

    `search` (2 to 100 characters) matches username, email, first name and
    last name, case-insensitively.
    """
    page_num, limit_num = resolve_pagination(page, limit)
    qs = User.all()
    if search is not None:
        term = normalize_search_query(search)
        qs = qs.filter(
            Q(username__icontains=term)
            | Q(email__icontains=term)
            | Q(first_name__icontains=term)
            | Q(last_name__icontains=term)
        )
    if role:
        qs = qs.filter(role=role)
    return await paginate(qs.order_by("-created_at"), page_num, limit_num, serialize_user)


@router.get("/{user_id}", response_model=dict)
async def get_user(user_id: str, current: User = Depends(get_current_user)):
    authorize(current, "user", "read", owner_id=user_id)
    user = await get_user_or_404(user_id)
    return {"user": user.public_profile()}


@router.get("/{user_id}/profile", response_model=dict)
async def get_public_profile(
    user_id: str,
    page: str | None = Query(None),
    limit: str | None = Query(None),
):
    """
    Public profile page: the user, their published posts and post statistics.
    Deactivated accounts are reported as missing.
    """
    page_num, limit_num = resolve_pagination(page, limit)
    user = await get_user_or_404(user_id)
    if not user.is_active:
        raise NotFoundError("User not found")
    qs = Post.published().filter(author_id=user.id).order_by("-created_at")
    posts = await paginate(qs, page_num, limit_num, serialize_post, related=POST_RELATIONS)
    return {
        "user": user.public_profile(),
        "posts": posts["items"],
        "stats": await post_totals(user.id, status="published"),
        "pagination": posts["pagination"],
    }


@router.put("/{user_id}", response_model=dict)
async def update_user(user_id: str, body: UserUpdateIn, current: User = Depends(get_current_user)):
    """
    Update a user.

    Profile fields may be changed by the user themselves or by an admin.
    `role` and `isActive` may only be changed by an admin, and an admin
    cannot demote or deactivate their own account. The last admin cannot
    be demoted.

    Raises:
        AuthorizationError (403): not self/admin, or non-admin touching role/isActive
        NotFoundError (404): no such user
        ValidationError (400): self-demotion, self-deactivation, last admin demotion
    """
    authorize(current, "user", "update", owner_id=user_id)
    user = await get_user_or_404(user_id)
    updates = body.model_dump(exclude_unset=True)
    is_self = str(current.id) == str(user.id)

    if updates.get("role") is not None:
        authorize(current, "user", "update_role")
        if updates["role"] != "admin" and user.is_admin:
            if is_self:
                raise ValidationError("You cannot remove your own admin role")
            if await User.filter(role="admin").count() <= 1:
                raise ValidationError("Cannot demote the last admin")
        user.role = updates["role"]

    if updates.get("isActive") is not None:
        authorize(current, "user", "update_status")
        if is_self and not updates["isActive"]:
            raise ValidationError("You cannot deactivate your own account")
        user.is_active = updates["isActive"]

    if "firstName" in updates:
        user.first_name = updates["firstName"]
    if "lastName" in updates:
        user.last_name = updates["lastName"]
    if "bio" in updates:
        user.bio = updates["bio"]

    await user.save()
    return {"message": "User updated successfully", "user": user.public_profile()}


@router.delete("/{user_id}", response_model=dict)
async def delete_user(user_id: str, current: User = Depends(get_current_user)):
    """
    Delete a user and every post they authored (admin only).

    Posts are removed first and the user second, inside one transaction:
    either both are gone or neither is.

    Raises:
        AuthorizationError (403): caller is not an admin
        ValidationError (400): an admin deleting their own account
        NotFoundError (404): no such user
    """
    authorize(current, "user", "delete")
    if str(current.id) == user_id:
        raise ValidationError("You cannot delete your own account")
    user = await get_user_or_404(user_id)
    async with in_transaction():
        deleted_posts = await Post.filter(author_id=user.id).delete()
        await user.delete()
    logger.info("[users] deleted user id=%s with %s posts (by admin id=%s)", user_id, deleted_posts, current.id)
    return {"message": "User deleted successfully", "deletedPosts": deleted_posts}


@router.get("/{user_id}/posts", response_model=dict)
async def list_user_posts(
    user_id: str,
    page: str | None = Query(None),
    limit: str | None = Query(None),
    status_filter: Literal["draft", "published", "archived"] | None = Query(None, alias="status"),
    current: User = Depends(get_current_user),
):
    """All posts of a user in any status (self or admin), newest first."""
    authorize(current, "user", "posts", owner_id=user_id)
    page_num, limit_num = resolve_pagination(page, limit)
    user = await get_user_or_404(user_id)
    qs = Post.filter(author_id=user.id)
    if status_filter:
        qs = qs.filter(status=status_filter)
    return await paginate(qs.order_by("-created_at"), page_num, limit_num, serialize_post, related=POST_RELATIONS)


@router.get("/{user_id}/stats", response_model=dict)
async def user_stats(user_id: str, current: User = Depends(get_current_user)):
    """
    Totals over every post of the user (self or admin):
    posts, views, likes, comments received and a count per status.
    """
    authorize(current, "user", "stats", owner_id=user_id)
    user = await get_user_or_404(user_id)
    stats = await post_totals(user.id)
    stats["totalComments"] = await Comment.filter(post__author__id=user.id).count()
    stats["byStatus"] = {
        post_status: await Post.filter(author_id=user.id, status=post_status).count()
        for post_status in POST_STATUSES
    }
    return {"stats": stats}
