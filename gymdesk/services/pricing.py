"""
Pricing rules for GymDesk subscriptions
Derives end dates, final prices, dues and duration labels from plan variants
"""
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from gymdesk.core.conversions import to_money
from gymdesk.core.errors import ValidationError

UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}

_LABEL_RE = re.compile(r"^\s*(\d+)\s+(day|week|month|year)s?\s*$", re.IGNORECASE)


def calculate_end_date(start_date: date, duration_days: int) -> date:
    """End date is the start date plus the variant's duration in days."""
    return start_date + timedelta(days=duration_days)


def calculate_final_price(price: object, discount: object = None) -> Decimal:
    """
    Apply a discount to a snapshot price.

    Raises:
        ValidationError: if the discount is negative or exceeds the price
    """
    price = to_money(price)
    discount = to_money(discount)
    if discount < 0:
        raise ValidationError("Discount amount cannot be negative")
    if discount > price:
        raise ValidationError("Discount amount cannot exceed the plan price")
    return max(Decimal("0.00"), price - discount)


def calculate_due(final_price: object, total_paid: object) -> Decimal:
    return max(Decimal("0.00"), to_money(final_price) - to_money(total_paid))


def paid_percent(final_price: object, total_paid: object) -> float:
    """Share of the final price already paid, capped at 100."""
    final_price = to_money(final_price)
    if final_price <= 0:
        return 100.0
    percent = to_money(total_paid) / final_price * 100
    return float(min(Decimal("100"), percent).quantize(Decimal("0.01")))


def _format_label(count: int, unit: str) -> str:
    suffix = "" if count == 1 else "s"
    return f"{count} {unit.capitalize()}{suffix}"


def derive_duration_label(duration_days: int) -> str:
    """Human label for a duration, e.g. 30 -> '1 Month', 14 -> '2 Weeks'."""
    for unit in ("year", "month", "week"):
        size = UNIT_DAYS[unit]
        if duration_days % size == 0:
            return _format_label(duration_days // size, unit)
    return _format_label(duration_days, "day")


def resolve_duration_label(duration_days: int, label: Optional[str] = None) -> str:
    """
    Validate a supplied label against the duration, or derive one.

    A label must read '<N> <day|week|month|year>[s]' and denote exactly
    ``duration_days``. The returned label is normalized ('2 weeks' -> '2 Weeks').
    """
    if duration_days is None or duration_days <= 0:
        raise ValidationError("Duration must be a positive number of days")
    if label is None or not label.strip():
        return derive_duration_label(duration_days)

    match = _LABEL_RE.match(label)
    if not match:
        raise ValidationError(
            f"Invalid duration label '{label}', expected e.g. '1 Month' or '14 Days'"
        )
    count = int(match.group(1))
    unit = match.group(2).lower()
    if count * UNIT_DAYS[unit] != duration_days:
        raise ValidationError(
            f"Duration label '{label}' does not match {duration_days} days"
        )
    return _format_label(count, unit)
