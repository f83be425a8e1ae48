from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from gymdesk.core.errors import ValidationError
from gymdesk.crud import financialsCrud, paymentsCrud, reportsCrud, subscriptionsCrud, usersCrud
from tests.conftest import ORG_ID, OTHER_ORG_ID, TODAY


async def _subscribe(db, kind, member_id, variant_id, **kwargs):
    created = await subscriptionsCrud.create_subscription(
        db, kind, ORG_ID, member_id, variant_id, today=TODAY, **kwargs
    )
    return created.subscription


async def test_dues_report_groups_by_member(db, member, monthly_plan, training_plan, trainer):
    _, variant = monthly_plan
    _, training_variant = training_plan
    other = await usersCrud.create_user(db, ORG_ID, "Ben", "Buyer")

    membership = await _subscribe(db, "membership", member.id, variant.id)
    await paymentsCrud.record_payment(
        db, "membership", ORG_ID, membership.id, member.id, Decimal("400"), "cash", today=TODAY
    )
    await _subscribe(db, "training", member.id, training_variant.id, trainer_id=trainer.id)
    await _subscribe(db, "membership", other.id, variant.id, discount_amount=Decimal("900"))

    report = await reportsCrud.dues_report(db, ORG_ID, today=TODAY)
    assert report["total"] == 2
    first, second = report["items"]

    assert first.member_id == member.id
    assert first.membership_dues_total == Decimal("600.00")
    assert first.training_dues_total == Decimal("500.00")
    assert first.total_due == Decimal("1100.00")
    assert first.email == "mia@example.com"
    assert len(first.memberships) == 1
    assert first.memberships[0].total_paid == Decimal("400.00")

    assert second.member_id == other.id
    assert second.total_due == Decimal("100.00")

    assert report["summary"].total_members_with_dues == 2
    assert report["summary"].grand_total == Decimal("1200.00")


async def test_dues_report_skips_cancelled_and_paid(db, member, monthly_plan):
    _, variant = monthly_plan
    cancelled = await _subscribe(db, "membership", member.id, variant.id)
    await subscriptionsCrud.cancel_subscription(db, "membership", ORG_ID, cancelled.id, today=TODAY)
    paid = await _subscribe(db, "membership", member.id, variant.id)
    await paymentsCrud.record_payment(
        db, "membership", ORG_ID, paid.id, member.id, Decimal("1000"), "card", today=TODAY
    )

    report = await reportsCrud.dues_report(db, ORG_ID, today=TODAY)
    assert report["items"] == []
    assert report["summary"].grand_total == Decimal("0.00")


async def test_dues_report_pages_but_summarises_everything(db, monthly_plan):
    _, variant = monthly_plan
    for i in range(3):
        buyer = await usersCrud.create_user(db, ORG_ID, f"Buyer{i}")
        await _subscribe(db, "membership", buyer.id, variant.id, discount_amount=Decimal(i * 100))

    report = await reportsCrud.dues_report(db, ORG_ID, limit=2, offset=0, today=TODAY)
    assert len(report["items"]) == 2
    assert report["total"] == 3
    assert report["summary"].grand_total == Decimal("2700.00")
    assert report["items"][0].total_due == Decimal("1000.00")


async def test_dues_report_member_filter(db, member, monthly_plan):
    _, variant = monthly_plan
    await _subscribe(db, "membership", member.id, variant.id)
    report = await reportsCrud.dues_report(db, ORG_ID, member_id=member.id + 999, today=TODAY)
    assert report["total"] == 0
    assert await reportsCrud.dues_report(db, OTHER_ORG_ID, today=TODAY) == {
        "items": [],
        "total": 0,
        "summary": reportsCrud.DuesSummary(total_members_with_dues=0, grand_total=Decimal("0.00")),
    }


async def test_monthly_summary_and_trends(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = await _subscribe(db, "membership", member.id, variant.id)
    await paymentsCrud.record_payment(
        db, "membership", ORG_ID, sub.id, member.id, Decimal("600"), "cash",
        paid_at=datetime(2024, 1, 10, tzinfo=timezone.utc), today=TODAY,
    )
    await paymentsCrud.record_payment(
        db, "membership", ORG_ID, sub.id, member.id, Decimal("100"), "cash",
        status="failed", paid_at=datetime(2024, 1, 11, tzinfo=timezone.utc), today=TODAY,
    )
    await financialsCrud.create_expense(db, ORG_ID, Decimal("250"), "rent", expense_date=date(2024, 1, 3))
    await financialsCrud.create_expense(db, ORG_ID, Decimal("50"), "utilities", expense_date=date(2023, 12, 20))

    january = await financialsCrud.monthly_summary(db, ORG_ID, "2024-01")
    assert january.month == "2024-01"
    assert january.revenue == Decimal("600.00")
    assert january.expenses == Decimal("250.00")
    assert january.net_profit == Decimal("350.00")

    points = await financialsCrud.trends(db, ORG_ID, months=2, today=date(2024, 1, 15))
    assert [(p.year, p.month) for p in points] == [(2023, 12), (2024, 1)]
    assert points[0].net_profit == Decimal("-50.00")
    assert points[1].revenue == Decimal("600.00")


async def test_trends_bounds_and_bad_month(db):
    with pytest.raises(ValidationError):
        await financialsCrud.trends(db, ORG_ID, months=0)
    with pytest.raises(ValidationError):
        await financialsCrud.trends(db, ORG_ID, months=61)
    with pytest.raises(ValidationError):
        await financialsCrud.monthly_summary(db, ORG_ID, "January")


async def test_roi_and_payback(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = await _subscribe(db, "membership", member.id, variant.id)
    await paymentsCrud.record_payment(
        db, "membership", ORG_ID, sub.id, member.id, Decimal("1000"), "cash",
        paid_at=datetime(2024, 1, 10, tzinfo=timezone.utc), today=TODAY,
    )
    await financialsCrud.create_expense(db, ORG_ID, Decimal("200"), "staff", expense_date=date(2024, 1, 20))
    await financialsCrud.create_investment(db, ORG_ID, "Treadmills", Decimal("4000"), investment_date=date(2023, 12, 1))

    result = await financialsCrud.roi(db, ORG_ID)
    assert result.total_invested == Decimal("4000.00")
    assert result.total_revenue == Decimal("1000.00")
    assert result.total_expenses == Decimal("200.00")
    assert result.total_net_profit == Decimal("800.00")
    assert result.roi_percent == 20.0
    # 3200 still to recover at 800 per month
    assert result.payback_months == 4


async def test_roi_without_investment(db):
    result = await financialsCrud.roi(db, ORG_ID)
    assert result.roi_percent is None
    assert result.payback_months == 0


async def test_expense_crud(db):
    expense = await financialsCrud.create_expense(
        db, ORG_ID, Decimal("75"), "maintenance", expense_date=date(2024, 2, 2), description="Fix rower"
    )
    updated = await financialsCrud.update_expense(db, ORG_ID, expense.id, {"amount": Decimal("80")})
    assert updated.amount == Decimal("80.00")
    assert [e.id for e in await financialsCrud.list_expenses(db, ORG_ID, month="2024-02")] == [expense.id]
    assert await financialsCrud.list_expenses(db, ORG_ID, month="2024-03") == []
    await financialsCrud.delete_expense(db, ORG_ID, expense.id)
    assert await financialsCrud.list_expenses(db, ORG_ID) == []

    with pytest.raises(ValidationError):
        await financialsCrud.create_expense(db, ORG_ID, Decimal("10"), "snacks")
    with pytest.raises(ValidationError):
        await financialsCrud.create_expense(db, ORG_ID, Decimal("0"), "rent")
