# forum/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: User account, profile and authentication model
- Category: Post taxonomy (optional parent category)
- Post: Blog/forum post with likes and view counter
- Comment: Comment on a post (belongs to Post)
"""
from .user import User
from .category import Category
from .post import Post, Comment
