# forum/models/post.py
"""
Database models for posts and their comments.
A post belongs to an author and a category, keeps a set of users who liked it
and owns its comments (deleted with the post).
"""
import math

from tortoise import fields, models
from tortoise.expressions import F, Q

from forum.models.ids import new_id

POST_STATUSES = ("draft", "published", "archived")
WORDS_PER_MINUTE = 200

# Relations needed to serialize a post
POST_RELATIONS = ("author", "category", "likes", "comments__user")

class Post(models.Model):
    """
    Post database model.

    Relationships:
    - Belongs to a User (author, many-to-one)
    - Belongs to a Category (many-to-one, RESTRICT on category delete)
    - Liked by many Users (many-to-many through "post_likes")
    - Has many Comments (one-to-many, cascade delete)

    Derived values (not stored): like count, comment count, reading time.
    """
    id = fields.CharField(max_length=24, pk=True, default=new_id)
    title = fields.CharField(max_length=200)
    content = fields.TextField()
    author = fields.ForeignKeyField("models.User", related_name="posts", on_delete=fields.CASCADE)
    category = fields.ForeignKeyField("models.Category", related_name="posts", on_delete=fields.RESTRICT)
    slug = fields.CharField(max_length=255, unique=True, index=True)  # Regenerated when the title changes
    status = fields.CharField(max_length=16, default="draft", index=True)  # draft / published / archived
    tags = fields.JSONField(default=list)
    search_tags = fields.TextField(default="")  # Lowercased tags, space separated, for search
    featured = fields.BooleanField(default=False)
    views = fields.IntField(default=0)
    likes = fields.ManyToManyField("models.User", related_name="liked_posts", through="post_likes")
    meta_description = fields.CharField(max_length=300, null=True)
    meta_keywords = fields.JSONField(default=list)
    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "posts"

    def __str__(self) -> str:
        return self.title

    # ----- derived values (relations must be fetched) -----
    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    @property
    def reading_time(self) -> int:
        """Estimated minutes to read, at 200 words per minute, rounded up."""
        return math.ceil(len((self.content or "").split()) / WORDS_PER_MINUTE)

    # ----- query helpers -----
    @classmethod
    def published(cls):
        return cls.filter(status="published")

    @staticmethod
    def search_filter(query: str) -> Q:
        """Case-insensitive substring match over title, content and tags."""
        return (
            Q(title__icontains=query)
            | Q(content__icontains=query)
            | Q(search_tags__icontains=query)
        )

    # ----- mutations -----
    async def increment_views(self) -> int:
        """Atomically add one view in storage and return the new count."""
        await Post.filter(id=self.id).update(views=F("views") + 1)
        await self.refresh_from_db(fields=["views"])
        return self.views

    async def toggle_like(self, user) -> bool:
        """
        Add `user` to the like set if absent, remove otherwise.

        Returns:
            True if the post is now liked by the user
        """
        if await self.likes.filter(id=user.id).exists():
            await self.likes.remove(user)
            return False
        await self.likes.add(user)
        return True

    async def add_comment(self, user, content: str) -> "Comment":
        return await Comment.create(post=self, user=user, content=content)

    async def load_related(self) -> "Post":
        await self.fetch_related(*POST_RELATIONS)
        return self

    def to_dict(self) -> dict:
        """Serialize a post whose POST_RELATIONS are fetched."""
        return {
            "id": str(self.id),
            "title": self.title,
            "content": self.content,
            "slug": self.slug,
            "status": self.status,
            "tags": list(self.tags or []),
            "featured": self.featured,
            "views": self.views,
            "author": self.author.author_summary(),
            "category": self.category.summary(),
            "likes": [str(u.id) for u in self.likes],
            "comments": [c.to_dict() for c in sorted(self.comments, key=lambda c: c.created_at)],
            "likeCount": self.like_count,
            "commentCount": self.comment_count,
            "readingTime": self.reading_time,
            "meta": {"description": self.meta_description, "keywords": list(self.meta_keywords or [])},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class Comment(models.Model):
    """A comment on a post. Owned by the post; deleted with it."""
    id = fields.CharField(max_length=24, pk=True, default=new_id)
    post = fields.ForeignKeyField("models.Post", related_name="comments", on_delete=fields.CASCADE)
    user = fields.ForeignKeyField("models.User", related_name="comments", on_delete=fields.CASCADE)
    content = fields.CharField(max_length=1000)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "comments"

    def to_dict(self) -> dict:
        """Serialize a comment whose `user` relation is fetched."""
        return {
            "id": str(self.id),
            "user": self.user.author_summary(),
            "content": self.content,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
