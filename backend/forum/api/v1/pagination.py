# forum/api/v1/pagination.py
"""
List envelope shared by every paginated endpoint:
{"items": [...], "pagination": {"page", "limit", "total", "pages"}}
"""
from typing import Callable, Iterable

from forum.core.validation import build_pagination


async def paginate(
    queryset,
    page: int,
    limit: int,
    serialize: Callable,
    related: Iterable[str] = (),
) -> dict:
    """
    Count the queryset, fetch one page of it and serialize each row.
    The queryset must already carry its ordering.
    """
    total = await queryset.count()
    rows = queryset.offset((page - 1) * limit).limit(limit)
    if related:
        rows = rows.prefetch_related(*related)
    return {
        "items": [serialize(row) for row in await rows],
        "pagination": build_pagination(page, limit, total),
    }
