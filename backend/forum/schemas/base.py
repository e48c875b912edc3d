# forum/schemas/base.py
"""
Shared base for request bodies.
String input is sanitized (and trimmed) before field validation runs.
"""
from typing import Any, ClassVar

from pydantic import BaseModel, model_validator

from forum.core.validation import sanitize_text

class SanitizedModel(BaseModel):
    """
    Request model whose string fields are passed through `sanitize_text`.
    Fields listed in `raw_fields` (passwords, tokens) are kept byte for byte,
    surrounding whitespace included.
    """
    raw_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def sanitize_strings(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {
            key: value if key in cls.raw_fields else sanitize_text(value)
            for key, value in data.items()
        }
