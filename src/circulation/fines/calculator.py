"""Overdue fine calculation.

Flat daily rate per day late, capped at a multiple of the item's value:

    fine = min(days_late * daily_rate, cap_multiplier * item_value)

Pure functions only; the lifecycle engine and the administrative fine entry
both call these so the two paths always agree.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from ..utils import to_money

Number = Union[Decimal, int, float, str]

DEFAULT_DAILY_RATE = Decimal("1.00")
DEFAULT_CAP_MULTIPLIER = Decimal("2.0")


@dataclass(frozen=True)
class FineQuote:
    """How a fine value was derived."""

    days_late: int
    daily_rate: Decimal
    item_value: Decimal
    raw_amount: Decimal
    cap: Decimal
    value: Decimal

    @property
    def capped(self) -> bool:
        """True when the cap, not the daily rate, set the value."""
        return self.value > 0 and self.value == self.cap


def fine_cap(item_value: Number, cap_multiplier: Number = DEFAULT_CAP_MULTIPLIER) -> Decimal:
    """Maximum fine for an item."""
    return to_money(Decimal(str(cap_multiplier)) * to_money(item_value))


def quote_fine(
    days_late: int,
    item_value: Number,
    daily_rate: Number = DEFAULT_DAILY_RATE,
    cap_multiplier: Number = DEFAULT_CAP_MULTIPLIER,
) -> FineQuote:
    """Compute a fine and keep the figures that produced it.

    Args:
        days_late: Whole days past the due date; 0 or less means no fine
        item_value: Value of the lent item
        daily_rate: Amount charged per day late
        cap_multiplier: The fine never exceeds this multiple of ``item_value``

    Returns:
        FineQuote with the final value and its derivation
    """
    value = to_money(item_value)
    rate = daily_rate if isinstance(daily_rate, Decimal) else Decimal(str(daily_rate))
    if value < 0:
        raise ValueError("item_value must not be negative")
    if rate < 0:
        raise ValueError("daily_rate must not be negative")

    days = max(0, days_late)
    cap = fine_cap(value, cap_multiplier)
    raw = to_money(rate * days)

    return FineQuote(
        days_late=days,
        daily_rate=rate,
        item_value=value,
        raw_amount=raw,
        cap=cap,
        value=min(raw, cap),
    )


def compute_fine(
    days_late: int,
    item_value: Number,
    daily_rate: Number = DEFAULT_DAILY_RATE,
    cap_multiplier: Number = DEFAULT_CAP_MULTIPLIER,
) -> Decimal:
    """Fine owed for returning an item ``days_late`` days late.

    Example:
        >>> compute_fine(10, Decimal("20.00"))
        Decimal('10.00')
        >>> compute_fine(12, Decimal("5.00"))
        Decimal('10.00')
    """
    return quote_fine(days_late, item_value, daily_rate, cap_multiplier).value
