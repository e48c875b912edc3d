# forum/core/validation.py
"""
Input validation and sanitization helpers.

Predicates (`is_valid_*`) never raise; they return False for None, empty or
malformed input. Resolvers (`resolve_pagination`, `normalize_search_query`,
`validate_upload`) raise `ValidationError` with a descriptive message.
"""
import datetime as dt
import math
import re
from typing import Any, Awaitable, Callable, Iterable
from urllib.parse import urlparse

from forum.core.errors import ConflictError, ValidationError

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_ANGLE_BRACKETS = re.compile(r"[<>]")
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=", re.IGNORECASE)

_OBJECT_ID = re.compile(r"^[0-9a-fA-F]{24}$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PASSWORD_STRENGTH = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Largest row offset a storage driver accepts (signed 64-bit)
MAX_OFFSET = 2**63 - 1

DEFAULT_ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/gif")
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def sanitize_text(data: Any) -> Any:
    """
    Strip markup that could be rendered as HTML/JS from user input.

    Strings are trimmed and cleaned; dicts and lists are sanitized recursively;
    any other value (including None) is returned unchanged.
    """
    if isinstance(data, str):
        cleaned = _SCRIPT_BLOCK.sub("", data.strip())
        cleaned = _ANGLE_BRACKETS.sub("", cleaned)
        cleaned = _JS_PROTOCOL.sub("", cleaned)
        cleaned = _EVENT_HANDLER.sub("", cleaned)
        return cleaned
    if isinstance(data, dict):
        return {key: sanitize_text(value) for key, value in data.items()}
    if isinstance(data, list):
        return [sanitize_text(item) for item in data]
    return data


def is_valid_identifier(value: Any) -> bool:
    """True iff value is a 24-character hexadecimal record id."""
    return isinstance(value, str) and bool(_OBJECT_ID.match(value))


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL.match(value))


def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def is_valid_date(value: Any) -> bool:
    """Accepts datetime/date objects and ISO-8601 strings."""
    if isinstance(value, (dt.date, dt.datetime)):
        return True
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def is_strong_password(value: Any) -> bool:
    """At least 6 characters with one lowercase letter, one uppercase letter and one digit."""
    return isinstance(value, str) and len(value) >= 6 and bool(_PASSWORD_STRENGTH.match(value))


def _parse_int(value: Any, name: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer") from None


def resolve_pagination(page: Any = None, limit: Any = None) -> tuple[int, int]:
    """
    Resolve page/limit query values.

    Absent values default to page 1 / limit 10; numeric strings are accepted.

    Raises:
        ValidationError: page < 1, limit outside [1, 100], an offset beyond
            MAX_OFFSET, or non-numeric input
    """
    page_num = _parse_int(page, "Page")
    limit_num = _parse_int(limit, "Limit")
    if page_num is None:
        page_num = DEFAULT_PAGE
    if limit_num is None:
        limit_num = DEFAULT_LIMIT
    if page_num < 1:
        raise ValidationError("Page number must be greater than 0")
    if limit_num < 1 or limit_num > MAX_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}")
    if (page_num - 1) * limit_num > MAX_OFFSET:
        raise ValidationError("Page number is too large")
    return page_num, limit_num


def build_pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def normalize_search_query(query: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Search query is required")
    trimmed = query.strip()
    if len(trimmed) < 2:
        raise ValidationError("Search query must be at least 2 characters long")
    if len(trimmed) > 100:
        raise ValidationError("Search query cannot exceed 100 characters")
    return trimmed


def refuse_nulls(updates: dict, fields: Iterable[str]) -> None:
    """Partial updates may clear nullable columns only; `fields` name the rest."""
    for field in fields:
        if field in updates and updates[field] is None:
            raise ValidationError(f"{field} cannot be null")


def validate_upload(
    file: Any,
    allowed_types: Iterable[str] = DEFAULT_ALLOWED_MIME_TYPES,
    max_size: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> bool:
    """
    Check an uploaded file's mimetype and size.

    `file` may be a FastAPI UploadFile (content_type/size) or any object or
    dict exposing mimetype/content_type and size.
    """
    if not file:
        raise ValidationError("No file uploaded")
    allowed = list(allowed_types)
    if isinstance(file, dict):
        mimetype = file.get("mimetype") or file.get("content_type")
        size = file.get("size")
    else:
        mimetype = getattr(file, "content_type", None) or getattr(file, "mimetype", None)
        size = getattr(file, "size", None)
    if mimetype not in allowed:
        raise ValidationError(f"File type not allowed. Allowed types: {', '.join(allowed)}")
    if size is not None and size > max_size:
        raise ValidationError(f"File size too large. Maximum size: {max_size / (1024 * 1024):g}MB")
    return True


def uniqueness_check(model, field: str, exclude_id: str | None = None) -> Callable[[Any], Awaitable[bool]]:
    """
    Build an async predicate that fails if another `model` row already has
    `field == value`. `exclude_id` skips the row being updated.

    Storage errors raised by the query propagate unchanged.
    """
    async def check(value: Any) -> bool:
        qs = model.filter(**{field: value})
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        if await qs.exists():
            raise ConflictError(f"{field} already exists")
        return True

    return check
