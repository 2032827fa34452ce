"""
Field formats and whole-record checks shared by the models, the admin and
the REST serializers.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.core.validators import RegexValidator

from .pricing import compute_total

PLATE_PATTERN = r"^[A-Z]{3}-?\d{4}$|^[A-Z]{3}\d[A-Z]\d{2}$"
TAX_ID_PATTERN = r"^\d{11}$"

TOTAL_PRICE_MAX_DIGITS = 12
TOTAL_PRICE_DECIMAL_PLACES = 2
TOTAL_PRICE_LIMIT = Decimal(10) ** (TOTAL_PRICE_MAX_DIGITS - TOTAL_PRICE_DECIMAL_PLACES)

plate_validator = RegexValidator(
    PLATE_PATTERN,
    message="Plate must look like 'AAA-1234' or 'AAA1A23'.",
    code="invalid_plate",
)
tax_id_validator = RegexValidator(
    TAX_ID_PATTERN,
    message="Tax id must contain exactly 11 digits.",
    code="invalid_tax_id",
)


def _add(errors: dict[str, list[str]], field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def rental_errors(attrs: dict[str, Any], *, derive_total: bool) -> dict[str, list[str]]:
    """
    Check the cross-field rules of a rental and return field-level errors.

    ``derive_total`` is true when the total price may still be filled in by
    the pricing rule (on creation); otherwise a total price must be supplied.
    """
    errors: dict[str, list[str]] = {}
    start_date = attrs.get("start_date")
    end_date = attrs.get("end_date")
    if start_date is not None and end_date is not None and end_date < start_date:
        _add(errors, "end_date", "End date must be on or after the start date.")

    start_odometer = attrs.get("start_odometer")
    end_odometer = attrs.get("end_odometer")
    if start_odometer is not None and end_odometer is not None and end_odometer < start_odometer:
        _add(errors, "end_odometer", "End odometer must be greater than or equal to the start odometer.")

    daily_rate = attrs.get("daily_rate")
    if daily_rate is not None and daily_rate <= 0:
        _add(errors, "daily_rate", "Daily rate must be greater than zero.")

    total_price = attrs.get("total_price")
    if derive_total and not errors and None not in (start_date, end_date, daily_rate):
        total_price = compute_total(start_date, end_date, daily_rate) or total_price

    if total_price is None:
        if not errors:
            _add(errors, "total_price", "Total price is required when it cannot be derived from the dates.")
    elif total_price <= Decimal("0"):
        _add(errors, "total_price", "Total price must be greater than zero.")
    elif not total_fits(total_price):
        _add(errors, "total_price", f"Total price must be less than {TOTAL_PRICE_LIMIT}.")
    return errors


def total_fits(total: Decimal) -> bool:
    return total < TOTAL_PRICE_LIMIT
