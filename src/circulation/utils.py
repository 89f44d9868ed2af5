"""Date and money helpers shared by the circulation modules."""

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

CENT = Decimal("0.01")

# datetime.weekday() values for Saturday and Sunday
WEEKEND = (5, 6)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a datetime for storage."""
    return ensure_utc(value).isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp, returning None for empty values."""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def is_business_day(value: datetime) -> bool:
    """Check whether a date falls on a weekday."""
    return value.weekday() not in WEEKEND


def add_business_days(start: datetime, days: int) -> datetime:
    """
    Advance ``start`` by a number of business days.

    Walks forward one calendar day at a time and only counts days that are
    not Saturday or Sunday. The time of day of ``start`` is kept.

    Args:
        start: Starting point (not counted itself)
        days: Number of business days to add

    Returns:
        The date on which the count reaches ``days``

    Example:
        >>> add_business_days(datetime(2024, 5, 3), 1)  # Friday
        datetime.datetime(2024, 5, 6, 0, 0)
    """
    if days < 0:
        raise ValueError("days must not be negative")

    current = start
    counted = 0
    while counted < days:
        current = current + timedelta(days=1)
        if is_business_day(current):
            counted += 1
    return current


def whole_days_late(due: datetime, returned: datetime) -> int:
    """Whole days elapsed past ``due``; 0 when returned on time."""
    due = ensure_utc(due)
    returned = ensure_utc(returned)
    if returned <= due:
        return 0
    return (returned - due).days


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Convert a value to a Decimal rounded to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
