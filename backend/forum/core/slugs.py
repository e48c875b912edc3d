# forum/core/slugs.py
"""
Slug derivation for posts and categories.
Called explicitly on the write path before a row is saved.
"""
import re

_NON_SLUG = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify(text: str) -> str:
    """
    Turn a title/name into a URL-safe identifier.

    >>> slugify("Hello, World!  Again")
    'hello-world-again'
    """
    slug = _NON_SLUG.sub("", (text or "").lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


async def unique_slug(model, text: str, exclude_id: str | None = None, fallback: str = "item") -> str:
    """
    Slug for `text` that no other `model` row uses.
    Appends -2, -3, ... while the candidate is taken.
    """
    base = slugify(text) or fallback
    candidate = base
    suffix = 1
    while True:
        qs = model.filter(slug=candidate)
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        if not await qs.exists():
            return candidate
        suffix += 1
        candidate = f"{base}-{suffix}"
