"""Helpers shared by services: id parsing, timestamps and author projections."""

import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

from ..core.errors import InvalidInput
from ..schemas.common import AuthorProjection


def parse_reference(value: Any) -> Optional[int]:
    """Return ``value`` as a record id, or ``None`` if it is not a well-formed one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        value = value.strip()
        if value.isdigit() and value.isascii():
            parsed = int(value)
            return parsed if parsed > 0 else None
    return None


def require_reference(value: Any, message: str) -> int:
    parsed = parse_reference(value)
    if parsed is None:
        raise InvalidInput(message)
    return parsed


def is_blank(value: Any) -> bool:
    """True for absent values and strings holding only whitespace."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def utc_now() -> str:
    # Microsecond precision keeps creation order stable for sorting.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def author_from_row(row: sqlite3.Row) -> AuthorProjection:
    """Build the author projection from ``author_*`` columns of a joined row."""
    return AuthorProjection(
        id=row["author_id"],
        username=row["author_username"],
        avatar_url=row["author_avatar_url"],
    )
