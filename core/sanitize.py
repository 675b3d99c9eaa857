"""
Input sanitization helpers for free-text search and tag input.
"""
import re
from typing import Iterable, List, Optional

MAX_SEARCH_LENGTH = 100
MAX_TAG_LENGTH = 50
MAX_TAGS = 20

LIKE_ESCAPE_CHAR = "\\"

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def sanitize_string(value: str) -> str:
    """Remove angle brackets and quotes, then trim."""
    return re.sub(r"[<>'\"]", "", value).strip()


def sanitize_search_query(query: Optional[str]) -> str:
    """
    Clean a free-text search string before it is used in a query.

    Markup characters and statement separators are removed and the result
    is trimmed and capped at MAX_SEARCH_LENGTH characters. Quotes, parentheses
    and LIKE wildcards are kept; escape them with escape_like() when
    building a pattern.
    """
    if not query:
        return ""
    cleaned = re.sub(r"[<>&;]", "", query)
    return cleaned.strip()[:MAX_SEARCH_LENGTH]


def escape_like(value: str) -> str:
    """Escape LIKE/ILIKE metacharacters so they only match themselves."""
    return re.sub(r"([\\%_])", r"\\\1", value)


def sanitize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """
    Normalize user supplied tags.

    Each tag is sanitized and trimmed; empty tags and duplicates are dropped
    (first occurrence wins) and at most MAX_TAGS are kept.
    """
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")

    result: List[str] = []
    seen = set()
    for tag in tags:
        if tag is None:
            continue
        cleaned = sanitize_string(str(tag))[:MAX_TAG_LENGTH].strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
        if len(result) >= MAX_TAGS:
            break
    return result


def validate_uuid(value: str) -> bool:
    return bool(value) and _UUID_RE.match(value) is not None
