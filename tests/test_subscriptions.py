from datetime import date, timedelta
from decimal import Decimal

import pytest

from gymdesk.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from gymdesk.crud import paymentsCrud, plansCrud, subscriptionsCrud, trainersCrud, usersCrud
from gymdesk.crud.subscriptionsCrud import InitialPayment
from tests.conftest import ORG_ID, OTHER_ORG_ID, TODAY


async def _membership(db, member, variant, **kwargs):
    kwargs.setdefault("today", TODAY)
    return await subscriptionsCrud.create_subscription(
        db, "membership", ORG_ID, member.id, variant.id, **kwargs
    )


async def test_create_derives_dates_and_price(db, member, monthly_plan):
    _, variant = monthly_plan
    created = await _membership(
        db, member, variant, start_date=date(2024, 1, 1), discount_amount=Decimal("200")
    )
    sub = created.subscription
    assert sub.start_date == date(2024, 1, 1)
    assert sub.end_date == date(2024, 1, 31)
    assert sub.price_at_purchase == Decimal("1000.00")
    assert sub.discount_amount == Decimal("200.00")
    assert sub.final_price == Decimal("800.00")
    assert sub.due_amount == Decimal("800.00")
    assert sub.total_paid == Decimal("0.00")
    assert not sub.is_fully_paid
    assert sub.status == "active"
    assert sub.version == 1
    assert sub.member_name == "Mia Member"
    assert sub.plan_name == "Gym Access"
    assert sub.variant_name == "1 Month"
    assert created.warnings == []


async def test_start_date_defaults_to_today(db, member, monthly_plan):
    _, variant = monthly_plan
    created = await _membership(db, member, variant)
    assert created.subscription.start_date == TODAY


async def test_discount_above_price_is_rejected(db, member, monthly_plan):
    _, variant = monthly_plan
    with pytest.raises(ValidationError):
        await _membership(db, member, variant, discount_amount=Decimal("1000.01"))


async def test_initial_payment_in_same_call(db, member, monthly_plan):
    _, variant = monthly_plan
    created = await _membership(
        db, member, variant,
        discount_amount=Decimal("200"),
        payment=InitialPayment(amount=Decimal("800"), method="cash"),
    )
    assert created.payment_id is not None
    assert created.subscription.is_fully_paid
    assert created.subscription.due_amount == Decimal("0.00")


async def test_initial_payment_requires_method(db, member, monthly_plan):
    _, variant = monthly_plan
    with pytest.raises(ValidationError):
        await _membership(db, member, variant, payment=InitialPayment(amount=Decimal("100")))
    result = await subscriptionsCrud.list_subscriptions(db, "membership", ORG_ID, today=TODAY)
    assert result["total"] == 0


async def test_second_active_membership_warns(db, member, monthly_plan):
    _, variant = monthly_plan
    await _membership(db, member, variant)
    second = await _membership(db, member, variant)
    assert second.warnings == ["Member already has an active membership"]
    assert second.subscription.status == "active"


async def test_variant_category_must_match_kind(db, member, training_plan, trainer):
    _, variant = training_plan
    with pytest.raises(ValidationError):
        await _membership(db, member, variant)


async def test_inactive_variant_cannot_be_purchased(db, member, monthly_plan):
    _, variant = monthly_plan
    await plansCrud.deactivate_plan_variant(db, ORG_ID, variant.id)
    with pytest.raises(ValidationError):
        await _membership(db, member, variant)


async def test_inactive_member_cannot_subscribe(db, member, monthly_plan):
    _, variant = monthly_plan
    await usersCrud.delete_user(db, ORG_ID, member.id)
    with pytest.raises(ValidationError):
        await _membership(db, member, variant)


async def test_member_must_belong_to_organization(db, member, monthly_plan):
    _, variant = monthly_plan
    with pytest.raises(NotFoundError):
        await subscriptionsCrud.create_subscription(
            db, "membership", OTHER_ORG_ID, member.id, variant.id, today=TODAY
        )


async def test_training_snapshots_trainer(db, member, training_plan, trainer):
    _, variant = training_plan
    created = await subscriptionsCrud.create_subscription(
        db, "training", ORG_ID, member.id, variant.id, trainer_id=trainer.id, today=TODAY
    )
    assert created.subscription.trainer_id == trainer.id
    assert created.subscription.trainer_name == "Rocky"
    assert created.subscription.end_date == date(2024, 1, 8)

    await trainersCrud.deactivate_trainer(db, ORG_ID, trainer.id)
    current = await subscriptionsCrud.get_subscription(
        db, "training", ORG_ID, created.subscription.id, today=TODAY
    )
    assert current.trainer_name == "Rocky"


async def test_training_requires_active_trainer(db, member, training_plan, trainer):
    _, variant = training_plan
    with pytest.raises(ValidationError):
        await subscriptionsCrud.create_subscription(
            db, "training", ORG_ID, member.id, variant.id, today=TODAY
        )
    await trainersCrud.deactivate_trainer(db, ORG_ID, trainer.id)
    with pytest.raises(ValidationError):
        await subscriptionsCrud.create_subscription(
            db, "training", ORG_ID, member.id, variant.id, trainer_id=trainer.id, today=TODAY
        )


async def test_freeze_unfreeze_cancel(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription

    frozen = await subscriptionsCrud.freeze_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    assert frozen.status == "frozen"
    assert frozen.end_date == sub.end_date
    assert frozen.final_price == sub.final_price
    assert frozen.version == sub.version + 1

    active = await subscriptionsCrud.unfreeze_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    assert active.status == "active"

    cancelled = await subscriptionsCrud.cancel_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    assert cancelled.status == "cancelled"

    with pytest.raises(InvalidTransitionError) as exc_info:
        await subscriptionsCrud.unfreeze_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    assert "cancelled" in exc_info.value.message


async def test_cancelled_subscription_rejects_edits(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    await subscriptionsCrud.cancel_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    with pytest.raises(InvalidTransitionError):
        await subscriptionsCrud.update_subscription(
            db, "membership", ORG_ID, sub.id, {"notes": "late"}, today=TODAY
        )


async def test_edit_recomputes_final_price_from_snapshot(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    await plansCrud.update_plan_variant(db, ORG_ID, variant.id, {"price": Decimal("1500")})

    updated = await subscriptionsCrud.update_subscription(
        db, "membership", ORG_ID, sub.id,
        {"discount_amount": Decimal("100"), "notes": "loyalty"},
        today=TODAY,
    )
    assert updated.final_price == Decimal("900.00")
    assert updated.price_at_purchase == Decimal("1000.00")
    assert updated.notes == "loyalty"


async def test_edit_rejects_end_before_start(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    with pytest.raises(ValidationError):
        await subscriptionsCrud.update_subscription(
            db, "membership", ORG_ID, sub.id, {"end_date": date(2023, 12, 1)}, today=TODAY
        )


async def test_stale_version_is_rejected(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    await subscriptionsCrud.freeze_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    with pytest.raises(ConflictError):
        await subscriptionsCrud.update_subscription(
            db, "membership", ORG_ID, sub.id, {"notes": "x"},
            expected_version=sub.version, today=TODAY,
        )


async def test_overdue_subscriptions_expire_lazily(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant, start_date=date(2024, 1, 1))).subscription

    still_active = await subscriptionsCrud.get_subscription(
        db, "membership", ORG_ID, sub.id, today=date(2024, 1, 31)
    )
    assert still_active.status == "active"

    expired = await subscriptionsCrud.get_subscription(
        db, "membership", ORG_ID, sub.id, today=date(2024, 2, 1)
    )
    assert expired.status == "expired"
    assert expired.remaining_days == 0


async def test_frozen_subscriptions_do_not_expire(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    await subscriptionsCrud.freeze_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    changed = await subscriptionsCrud.expire_overdue_subscriptions(db, today=date(2025, 1, 1))
    assert changed == 0


async def test_expired_allows_only_bookkeeping_edits(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    later = date(2024, 3, 1)
    updated = await subscriptionsCrud.update_subscription(
        db, "membership", ORG_ID, sub.id, {"notes": "renew soon"}, today=later
    )
    assert updated.status == "expired"
    assert updated.notes == "renew soon"
    with pytest.raises(InvalidTransitionError):
        await subscriptionsCrud.update_subscription(
            db, "membership", ORG_ID, sub.id, {"end_date": date(2024, 4, 1)}, today=later
        )


async def test_listing_stats_and_expiring(db, member, monthly_plan):
    plan_type, variant = monthly_plan
    weekly = await plansCrud.create_plan_variant(db, ORG_ID, plan_type.id, 5, Decimal("300"))
    short = (await _membership(db, member, weekly)).subscription
    long = (await _membership(db, member, variant)).subscription
    await subscriptionsCrud.freeze_subscription(db, "membership", ORG_ID, long.id, today=TODAY)

    listed = await subscriptionsCrud.list_subscriptions(
        db, "membership", ORG_ID, status="active", today=TODAY
    )
    assert listed["total"] == 1
    assert listed["items"][0].id == short.id

    expiring = await subscriptionsCrud.list_expiring(db, "membership", ORG_ID, days=7, today=TODAY)
    assert [s.id for s in expiring] == [short.id]

    stats = await subscriptionsCrud.subscription_stats(db, "membership", ORG_ID, today=TODAY)
    assert stats.total == 2
    assert stats.active == 1
    assert stats.frozen == 1
    assert stats.new_this_month == 2

    active = await subscriptionsCrud.get_active_subscription(
        db, "membership", ORG_ID, member.id, today=TODAY
    )
    assert active.id == short.id

    history = await subscriptionsCrud.list_member_subscriptions(
        db, "membership", ORG_ID, member.id, today=TODAY
    )
    assert {s.id for s in history} == {short.id, long.id}


async def test_member_with_open_subscription_cannot_be_deleted(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    with pytest.raises(ConflictError):
        await usersCrud.delete_user(db, ORG_ID, member.id, today=TODAY)
    await subscriptionsCrud.cancel_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    deleted = await usersCrud.delete_user(db, ORG_ID, member.id, today=TODAY)
    assert not deleted.is_active


async def test_member_with_overdue_membership_can_be_deleted(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant, start_date=TODAY - timedelta(days=90))).subscription
    assert sub.status == "active"

    deleted = await usersCrud.delete_user(db, ORG_ID, member.id, today=TODAY)
    assert not deleted.is_active
    current = await subscriptionsCrud.get_subscription(db, "membership", ORG_ID, sub.id, today=TODAY)
    assert current.status == "expired"


async def test_payments_survive_on_dues_after_listing(db, member, monthly_plan):
    _, variant = monthly_plan
    sub = (await _membership(db, member, variant)).subscription
    await paymentsCrud.record_payment(
        db, "membership", ORG_ID, sub.id, member.id, Decimal("250"), "upi", today=TODAY
    )
    listed = await subscriptionsCrud.list_subscriptions(db, "membership", ORG_ID, today=TODAY)
    assert listed["items"][0].total_paid == Decimal("250.00")
    assert listed["items"][0].due_amount == Decimal("750.00")
