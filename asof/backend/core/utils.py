"""
Core Utilities.

Shared utility functions used across the backend.
All modules should import utilities from this module.
"""

import math
import re
import unicodedata
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
_WORD = re.compile(r"\S+")


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application are timezone-naive
    and assumed to be UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an offset-aware datetime to naive UTC. Naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def slugify(value: str, max_length: int = 200) -> str:
    """
    Turn a title into a URL slug.

    Accents are folded to ASCII ("Notícias do Ano" -> "noticias-do-ano").
    Returns an empty string when nothing slug-worthy remains.
    """
    normalized = unicodedata.normalize("NFKD", value)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = _NON_SLUG_CHARS.sub("-", ascii_text).strip("-")
    return slug[:max_length].rstrip("-")


def count_words(text: str) -> int:
    return len(_WORD.findall(text or ""))


def reading_time_minutes(text: str, words_per_minute: int = 200) -> int:
    """Minutes needed to read the text, rounded up, at least 1."""
    words = count_words(text)
    return max(1, math.ceil(words / words_per_minute))


def is_valid_email(value: str) -> bool:
    """Syntax-only address check (no DNS lookup)."""
    try:
        validate_email(value or "", check_deliverability=False)
    except EmailNotValidError:
        return False
    return True
