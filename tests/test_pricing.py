from datetime import date
from decimal import Decimal

import pytest

from gymdesk.core.conversions import coerce_int, parse_month, to_money
from gymdesk.core.errors import ValidationError
from gymdesk.services.pricing import (
    calculate_due,
    calculate_end_date,
    calculate_final_price,
    derive_duration_label,
    paid_percent,
    resolve_duration_label,
)


def test_end_date_adds_duration_days():
    assert calculate_end_date(date(2024, 1, 1), 30) == date(2024, 1, 31)
    assert calculate_end_date(date(2024, 2, 20), 10) == date(2024, 3, 1)


def test_final_price_applies_discount():
    assert calculate_final_price(Decimal("1000"), Decimal("200")) == Decimal("800.00")
    assert calculate_final_price(Decimal("1000"), None) == Decimal("1000.00")
    assert calculate_final_price(Decimal("1000"), Decimal("1000")) == Decimal("0.00")


@pytest.mark.parametrize("discount", [Decimal("-1"), Decimal("1000.01")])
def test_final_price_rejects_out_of_range_discount(discount):
    with pytest.raises(ValidationError):
        calculate_final_price(Decimal("1000"), discount)


def test_due_never_negative():
    assert calculate_due(Decimal("800"), Decimal("300")) == Decimal("500.00")
    assert calculate_due(Decimal("800"), Decimal("900")) == Decimal("0.00")


def test_paid_percent():
    assert paid_percent(Decimal("800"), Decimal("200")) == 25.0
    assert paid_percent(Decimal("800"), Decimal("1200")) == 100.0
    assert paid_percent(Decimal("0"), Decimal("0")) == 100.0


@pytest.mark.parametrize(
    "days, label",
    [(1, "1 Day"), (10, "10 Days"), (7, "1 Week"), (14, "2 Weeks"),
     (30, "1 Month"), (90, "3 Months"), (365, "1 Year")],
)
def test_derive_duration_label(days, label):
    assert derive_duration_label(days) == label


def test_resolve_label_accepts_matching_label():
    assert resolve_duration_label(14, "2 weeks") == "2 Weeks"
    assert resolve_duration_label(30, " 1 month ") == "1 Month"
    assert resolve_duration_label(30) == "1 Month"


def test_resolve_label_rejects_mismatch_and_garbage():
    with pytest.raises(ValidationError):
        resolve_duration_label(30, "2 Months")
    with pytest.raises(ValidationError):
        resolve_duration_label(30, "a month")
    with pytest.raises(ValidationError):
        resolve_duration_label(0)


def test_conversions():
    assert to_money(None) == Decimal("0.00")
    assert to_money(12.345) == Decimal("12.35")
    assert coerce_int("42") == 42
    assert coerce_int(True) is None
    assert coerce_int("x") is None
    assert parse_month("2024-03") == (2024, 3)
    assert parse_month(None, today=date(2024, 5, 9)) == (2024, 5)
    with pytest.raises(ValueError):
        parse_month("03/2024")
