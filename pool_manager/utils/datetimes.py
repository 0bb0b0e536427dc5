"""
Datetime helpers.

All timestamps are stored as naive UTC. API payloads may carry offsets
("2026-01-15T14:00:00Z"); normalize them before they reach the database.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
