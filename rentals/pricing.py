"""Rental price calculation."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")
SECONDS_PER_DAY = Decimal(86400)


def rental_days(start_date: datetime, end_date: datetime) -> Decimal:
    """Length of the rental in fractional days (no calendar rounding)."""
    delta = end_date - start_date
    return Decimal(str(delta.total_seconds())) / SECONDS_PER_DAY


def compute_total(start_date: datetime, end_date: datetime, daily_rate: Decimal) -> Decimal | None:
    """
    Return ``daily_rate * days`` rounded to cents, or ``None`` when the
    duration is not strictly positive.

    ``None`` means the caller's own total is kept. A duration so short that
    it bills less than one cent is treated the same way.
    """
    days = rental_days(start_date, end_date)
    if days <= 0:
        return None
    total = (Decimal(daily_rate) * days).quantize(CENTS, rounding=ROUND_HALF_UP)
    if total <= 0:
        return None
    return total
