"""
Form field normalization shared by every dashboard form.

Browsers submit every field as a string (or omit unchecked checkboxes), so the
same few coercions apply everywhere: blank text becomes None, positions parse
leniently to an int, checkboxes are "on" or absent, and datetime-local inputs
become ISO-8601 UTC timestamps.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Mapping

SLUG_MAX_LENGTH = 80

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
_LEADING_INT = re.compile(r"^\s*([+-]?[0-9]+)")
# Well under int()'s string conversion limit.
_MAX_POSITION_DIGITS = 1000


def clean_text(raw: str | None) -> str | None:
    """Strip; blank becomes None."""
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def form_id(raw: str | None) -> str | None:
    """Row id from a hidden field. None means the form creates a new row."""
    return clean_text(raw)


def parse_position(raw: str | None, default: int = 0) -> int:
    """Leading-integer parse: "12abc" -> 12, "3.7" -> 3, "abc" -> default."""
    if not raw:
        return default
    m = _LEADING_INT.match(str(raw))
    if not m:
        return default
    digits = m.group(1)
    if len(digits) > _MAX_POSITION_DIGITS:
        return default
    return int(digits)


def is_checked(form: Mapping[str, str], name: str) -> bool:
    return form.get(name) == "on"


def parse_timestamp(raw: str | None) -> str | None:
    """
    Parse a datetime-local ("2024-05-01T10:30") or ISO-8601 value into an
    ISO-8601 UTC string. Naive values are taken as UTC.

    Raises ValueError on unparsable input.
    """
    value = clean_text(raw)
    if value is None:
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def slugify(text: str, fallback: str) -> str:
    slug = _SLUG_INVALID.sub("-", text.lower().strip()).strip("-")
    return slug[:SLUG_MAX_LENGTH] or fallback


def slug_or_derived(raw_slug: str | None, source: str, fallback: str) -> str:
    """An explicit slug wins; otherwise derive one from the title/prompt."""
    return clean_text(raw_slug) or slugify(source, fallback)
