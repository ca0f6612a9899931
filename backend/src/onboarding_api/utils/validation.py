"""Normalization of query filters and client-supplied JSON.

Queries are always parameterized by SQLAlchemy; these helpers bound what
reaches them and drop values that can never match.
"""

import re
from typing import Any

MAX_SEARCH_LENGTH = 200
MAX_DEPARTMENT_LENGTH = 255
MAX_STATUS_LENGTH = 50

# Letters, numbers, spaces and common punctuation
SAFE_TEXT_PATTERN = re.compile(r'^[\w\s\-.,&()\'"/]+$', re.UNICODE)
_NON_DIGITS = re.compile(r"\D")

# Limits for client-posted audit details
DETAILS_MAX_DEPTH = 3
DETAILS_MAX_ITEMS = 50
DETAILS_MAX_KEY_LENGTH = 100
DETAILS_MAX_STRING_LENGTH = 10000


def _trimmed(value: str | None, max_length: int) -> str | None:
    """``value`` cut to ``max_length`` and stripped; None when nothing is left."""
    if value is None:
        return None
    return value[:max_length].strip() or None


def sanitize_search(search: str | None, max_length: int = MAX_SEARCH_LENGTH) -> str | None:
    """Free-text search with statement separators and comment markers removed."""
    if search is None:
        return None
    return _trimmed(search[:max_length].replace(";", "").replace("--", ""), max_length)


def sanitize_department(department: str | None, max_length: int = MAX_DEPARTMENT_LENGTH) -> str | None:
    """Department filter, or None when it contains unexpected characters."""
    department = _trimmed(department, max_length)
    if department is None or not SAFE_TEXT_PATTERN.match(department):
        return None
    return department


def validate_against_whitelist(
    value: str | None,
    allowed_values: set[str],
    max_length: int = 50,
) -> str | None:
    """``value`` when it is one of ``allowed_values``, None otherwise."""
    value = _trimmed(value, max_length)
    return value if value in allowed_values else None


def sanitize_status(status: str | None, allowed_values: set[str] | None = None) -> str | None:
    """Account status filter.

    Statuses are configurable display values (``Pending``, ``Active``...), so
    case is preserved. Without ``allowed_values`` any non-empty status passes.
    """
    if allowed_values:
        return validate_against_whitelist(status, allowed_values, MAX_STATUS_LENGTH)
    return _trimmed(status, MAX_STATUS_LENGTH)


def escape_like_wildcards(value: str) -> str:
    """Escape SQL LIKE wildcards so they match literally.

    Example:
        >>> escape_like_wildcards("50%_off")
        '50\\\\%\\\\_off'
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def digits_only(value: str | None) -> str:
    """Keep only the digits of a phone number."""
    return _NON_DIGITS.sub("", value or "")


def validate_dict_recursive(
    data: Any,
    max_depth: int = DETAILS_MAX_DEPTH,
    current_depth: int = 0,
    max_items: int = DETAILS_MAX_ITEMS,
) -> None:
    """Bound the size and nesting of a client-supplied JSON document.

    Raises:
        ValueError: If a limit is exceeded or a value is not JSON-like
    """
    if current_depth > max_depth:
        raise ValueError(f"Details nesting too deep (max {max_depth} levels)")

    if isinstance(data, dict):
        if len(data) > max_items:
            raise ValueError(f"Too many detail fields (max {max_items})")
        for key in data:
            if not isinstance(key, str):
                raise ValueError("Detail keys must be strings")
            if len(key) > DETAILS_MAX_KEY_LENGTH:
                raise ValueError(f"Detail key too long (max {DETAILS_MAX_KEY_LENGTH} chars)")
        children = list(data.values())
    elif isinstance(data, list):
        if len(data) > max_items:
            raise ValueError(f"Too many items in detail list (max {max_items})")
        children = data
    elif isinstance(data, str):
        if len(data) > DETAILS_MAX_STRING_LENGTH:
            raise ValueError(f"Detail value too long (max {DETAILS_MAX_STRING_LENGTH} chars)")
        return
    elif data is None or isinstance(data, (int, float, bool)):
        return
    else:
        raise ValueError(f"Invalid detail value type: {type(data).__name__}")

    for child in children:
        validate_dict_recursive(child, max_depth, current_depth + 1, max_items)
