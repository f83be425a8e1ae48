"""Conversion helpers for common type coercion."""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENTS = Decimal("0.01")


def coerce_int(value: object) -> Optional[int]:
    """Return an int for valid string/int inputs, otherwise None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    return None


def to_money(value: object) -> Decimal:
    """Normalize a numeric value to a Decimal rounded to cents. None counts as zero."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_month(value: Optional[str], today: Optional[date] = None) -> tuple[int, int]:
    """Parse a YYYY-MM string into (year, month); defaults to the current month."""
    if not value:
        today = today or date.today()
        return today.year, today.month
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except ValueError as exc:
        raise ValueError(f"Invalid month '{value}', expected YYYY-MM") from exc
    return parsed.year, parsed.month
