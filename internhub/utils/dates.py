"""
Date helpers.

All timestamps are stored as naive UTC. PostgreSQL hands back `datetime`
objects; other drivers (SQLite in tests) hand back ISO strings, so anything
read from SQL and used in arithmetic goes through `as_datetime` first.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_datetime(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Normalize a DB/request value to naive UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
