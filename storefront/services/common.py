"""Helpers shared by the server actions."""

from __future__ import annotations

import re
import uuid
from typing import Optional

from pydantic import ValidationError

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(_UUID_RE.match(str(value)))


def parse_uuid(value) -> Optional[uuid.UUID]:
    """Return a UUID for canonical string input (or a UUID), else None."""
    if isinstance(value, uuid.UUID):
        return value
    if not is_valid_uuid(value):
        return None
    return uuid.UUID(str(value))


def slugify(name: str) -> str:
    """'Summer Sale!' -> 'summer-sale'."""
    return _SLUG_STRIP_RE.sub("-", name.lower()).strip("-")


def value_slug(value: str) -> str:
    """
    Slug form of an attribute value as exposed in filter options.

    Each single space becomes a hyphen, matching `replace(value, ' ', '-')` in the
    listing query, so every offered slug filters back to its value.
    """
    return value.lower().replace(" ", "-")


def first_error_message(exc: ValidationError) -> str:
    """First validation issue, without pydantic's "Value error, " prefix."""
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    if first.get("type") == "value_error" and "error" in first.get("ctx", {}):
        return str(first["ctx"]["error"])
    return first.get("msg", "Invalid input")


def is_connection_error(exc: Exception) -> bool:
    """Transient connection failure, judged from the driver's message."""
    message = str(exc)
    return any(marker in message for marker in ("ETIMEDOUT", "timeout expired", "timed out", "connection"))
