from __future__ import annotations

"""
Text helpers shared by the content services.

- `slugify`: URL slug from a title (ASCII-folded, lower-case, hyphen-joined)
- `is_valid_name`: unicode letters/numbers, whitespace and `- _ . , &`
- `has_control_chars`: rejects C0 control characters other than tab/LF/CR
"""

import re
import unicodedata

from slugify import slugify as _slugify

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")
_NAME_PUNCTUATION = frozenset("-_.,&")
# "@" reads as "at" in slugs
_SLUG_REPLACEMENTS = [["@", " at "]]


def slugify(value: str, separator: str = "-") -> str:
    """
    >>> slugify("Hello World & Friends")
    'hello-world-friends'
    >>> slugify("Crème brûlée")
    'creme-brulee'
    """
    return _slugify(value, separator=separator, replacements=_SLUG_REPLACEMENTS)


def is_valid_name(value: str) -> bool:
    """True when every character is a letter, number, whitespace or `- _ . , &`."""
    if not value:
        return False
    for ch in value:
        if ch.isspace() or ch in _NAME_PUNCTUATION:
            continue
        if unicodedata.category(ch)[0] not in ("L", "N"):
            return False
    return True


def has_control_chars(value: str) -> bool:
    return bool(_CONTROL_RE.search(value))


def is_valid_slug(value: str) -> bool:
    return bool(SLUG_RE.fullmatch(value))


__all__ = ["SLUG_RE", "slugify", "is_valid_name", "has_control_chars", "is_valid_slug"]
