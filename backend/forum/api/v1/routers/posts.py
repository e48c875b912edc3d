# forum/api/v1/routers/posts.py
import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from forum.api.v1.deps import get_current_user, get_optional_user
from forum.api.v1.pagination import paginate
from forum.core.errors import AuthorizationError, NotFoundError, ValidationError
from forum.core.policy import authorize, is_admin, is_allowed
from forum.core.slugs import unique_slug
from forum.core.validation import is_valid_identifier, normalize_search_query, refuse_nulls, resolve_pagination
from forum.models.category import Category
from forum.models.post import POST_RELATIONS, Post
from forum.models.user import User
from forum.schemas.post import CommentIn, PostCreateIn, PostUpdateIn

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/posts", tags=["posts"])

SortField = Literal["createdAt", "updatedAt", "title", "views"]
SortOrder = Literal["asc", "desc"]

_SORT_COLUMNS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "views": "views",
}


def search_tags(tags: list[str]) -> str:
    return " ".join(tag.lower() for tag in tags)


def order_by(sort: str, order: str) -> str:
    column = _SORT_COLUMNS[sort]
    return column if order == "asc" else f"-{column}"


def serialize(post: Post) -> dict:
    return post.to_dict()


async def get_post_or_404(post_id: str) -> Post:
    post = await Post.get_or_none(id=post_id) if is_valid_identifier(post_id) else None
    if not post:
        raise NotFoundError("Post not found")
    return post


async def get_category_or_404(category_id: str) -> Category:
    category = await Category.get_or_none(id=category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def ensure_visible(post: Post, user: User | None) -> None:
    """Unpublished posts exist only for their author and for admins."""
    if post.status != "published" and not is_allowed(user, "post", "view_unpublished", post.author_id):
        raise NotFoundError("Post not found")


async def read_post(post: Post, user: User | None) -> dict:
    ensure_visible(post, user)
    if post.status == "published":
        await post.increment_views()
    await post.load_related()
    return {"post": post.to_dict()}


@router.get("", response_model=dict)
async def list_posts(
    page: str | None = Query(None),
    limit: str | None = Query(None),
    category: str | None = Query(None),
    search: str | None = Query(None),
    status_filter: Literal["draft", "published", "archived"] | None = Query(None, alias="status"),
    sort: SortField = Query("createdAt"),
    order: SortOrder = Query("desc"),
    user: User | None = Depends(get_optional_user),
):
    """
    List posts with filters, search, sorting and pagination.

    Visibility:
      - no status filter: published posts only, for every caller
      - status=published: same as above
      - any other status: anonymous callers are refused (403); regular users
        see only their own posts in that status; admins see all of them

    Returns:
        dict: {"items": [post, ...], "pagination": {...}}

    Raises:
        ValidationError (400): bad page/limit, malformed category id, search too short
        AuthorizationError (403): anonymous caller asking for unpublished posts
    """
    page_num, limit_num = resolve_pagination(page, limit)

    qs = Post.all()
    if status_filter in (None, "published"):
        qs = qs.filter(status="published")
    else:
        if user is None:
            raise AuthorizationError("Authentication required to view unpublished posts")
        qs = qs.filter(status=status_filter)
        if not is_admin(user):
            qs = qs.filter(author_id=user.id)

    if category is not None:
        if not is_valid_identifier(category):
            raise ValidationError("Invalid category ID")
        qs = qs.filter(category_id=category)
    if search is not None:
        qs = qs.filter(Post.search_filter(normalize_search_query(search)))

    qs = qs.order_by(order_by(sort, order))
    return await paginate(qs, page_num, limit_num, serialize, related=POST_RELATIONS)


@router.get("/slug/{slug}", response_model=dict)
async def get_post_by_slug(slug: str, user: User | None = Depends(get_optional_user)):
    """Fetch a post by slug. Same visibility and view counting as by id."""
    post = await Post.get_or_none(slug=slug)
    if not post:
        raise NotFoundError("Post not found")
    return await read_post(post, user)


@router.get("/author/{author_id}", response_model=dict)
async def list_author_posts(
    author_id: str,
    page: str | None = Query(None),
    limit: str | None = Query(None),
):
    """
    Published posts of one author, newest first.
    An unknown author simply has no posts.
    """
    page_num, limit_num = resolve_pagination(page, limit)
    qs = Post.published().filter(author_id=author_id).order_by("-created_at")
    return await paginate(qs, page_num, limit_num, serialize, related=POST_RELATIONS)


@router.get("/{post_id}", response_model=dict)
async def get_post(post_id: str, user: User | None = Depends(get_optional_user)):
    """
    Fetch a single post.

    Reading a published post adds exactly one view. Unpublished posts are
    reported as missing to everyone but their author and admins.

    Raises:
        NotFoundError (404): no such post, or not visible to the caller
    """
    post = await get_post_or_404(post_id)
    return await read_post(post, user)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=dict)
async def create_post(body: PostCreateIn, user: User = Depends(get_current_user)):
    """
    Create a post authored by the caller.

    Raises:
        ValidationError (400): invalid fields
        NotFoundError (404): the referenced category does not exist
    """
    authorize(user, "post", "create")
    category = await get_category_or_404(body.category)
    post = await Post.create(
        title=body.title,
        content=body.content,
        author=user,
        category=category,
        slug=await unique_slug(Post, body.title, fallback="post"),
        status=body.status,
        tags=body.tags,
        search_tags=search_tags(body.tags),
        featured=body.featured,
        meta_description=body.metaDescription,
        meta_keywords=body.metaKeywords,
    )
    await post.load_related()
    logger.info("[posts] created post id=%s by user id=%s", post.id, user.id)
    return {"message": "Post created successfully", "post": post.to_dict()}


@router.put("/{post_id}", response_model=dict)
async def update_post(post_id: str, body: PostUpdateIn, user: User = Depends(get_current_user)):
    """
    Update a post. Only supplied fields change; a new title gets a new slug.
    An explicit null clears metaDescription and is refused for every other field.

    Raises:
        NotFoundError (404): no such post, or new category does not exist
        AuthorizationError (403): caller is neither the author nor an admin
        ValidationError (400): invalid fields
    """
    post = await get_post_or_404(post_id)
    authorize(user, "post", "update", owner_id=post.author_id)

    updates = body.model_dump(exclude_unset=True)
    refuse_nulls(updates, ("title", "content", "category", "status", "tags", "featured", "metaKeywords"))
    if "title" in updates and updates["title"] != post.title:
        post.title = updates["title"]
        post.slug = await unique_slug(Post, post.title, exclude_id=post.id, fallback="post")
    if "content" in updates:
        post.content = updates["content"]
    if "category" in updates:
        post.category = await get_category_or_404(updates["category"])
    if "status" in updates:
        post.status = updates["status"]
    if "tags" in updates:
        post.tags = updates["tags"]
        post.search_tags = search_tags(updates["tags"])
    if "featured" in updates:
        post.featured = updates["featured"]
    if "metaDescription" in updates:
        post.meta_description = updates["metaDescription"]
    if "metaKeywords" in updates:
        post.meta_keywords = updates["metaKeywords"]
    await post.save()
    await post.load_related()
    return {"message": "Post updated successfully", "post": post.to_dict()}


@router.delete("/{post_id}", response_model=dict)
async def delete_post(post_id: str, user: User = Depends(get_current_user)):
    post = await get_post_or_404(post_id)
    authorize(user, "post", "delete", owner_id=post.author_id)
    await post.delete()
    logger.info("[posts] deleted post id=%s by user id=%s", post_id, user.id)
    return {"message": "Post deleted successfully"}


@router.post("/{post_id}/like", response_model=dict)
async def toggle_like(post_id: str, user: User = Depends(get_current_user)):
    """Like the post, or remove the caller's like if already present."""
    post = await get_post_or_404(post_id)
    ensure_visible(post, user)
    authorize(user, "post", "like")
    liked = await post.toggle_like(user)
    like_count = await post.likes.all().count()
    return {
        "message": "Post liked" if liked else "Post unliked",
        "liked": liked,
        "likeCount": like_count,
    }


@router.post("/{post_id}/comments", status_code=status.HTTP_201_CREATED, response_model=dict)
async def add_comment(post_id: str, body: CommentIn, user: User = Depends(get_current_user)):
    post = await get_post_or_404(post_id)
    ensure_visible(post, user)
    authorize(user, "post", "comment")
    comment = await post.add_comment(user, body.content)
    await comment.fetch_related("user")
    return {"message": "Comment added successfully", "comment": comment.to_dict()}
