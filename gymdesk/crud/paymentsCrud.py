from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.core.conversions import to_money
from gymdesk.core.errors import ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.models import Payment
from gymdesk.crud.subscriptionsCrud import (
    expire_overdue_subscriptions,
    get_subscription_model,
)
from gymdesk.services import lifecycle
from gymdesk.services.ledger import new_payment, total_paid
from gymdesk.services.pricing import calculate_due, paid_percent

logger = get_logger("crud.payments")


@dataclass
class PaymentData:
    id: int
    member_id: int
    membership_id: Optional[int]
    training_id: Optional[int]
    amount: Decimal
    method: str
    status: str
    reference: Optional[str]
    notes: Optional[str]
    paid_at: Optional[datetime]
    created_at: datetime


@dataclass
class DuesData:
    subscription_id: int
    kind: str
    status: str
    final_price: Decimal
    total_paid: Decimal
    due_amount: Decimal
    is_fully_paid: bool
    paid_percent: float
    payments: List[PaymentData] = field(default_factory=list)


def _payment_to_data(payment: Payment) -> PaymentData:
    """Map Payment model to PaymentData DTO."""
    return PaymentData(
        id=payment.id,
        member_id=payment.member_id,
        membership_id=payment.membership_id,
        training_id=payment.training_id,
        amount=to_money(payment.amount),
        method=payment.method,
        status=payment.status,
        reference=payment.reference,
        notes=payment.notes,
        paid_at=payment.paid_at,
        created_at=payment.created_at,
    )


def _payment_sort_key(payment: Payment):
    stamp = payment.paid_at or payment.created_at
    # SQLite hands back naive datetimes; compare on the wall-clock value
    return (stamp.replace(tzinfo=None) if stamp else datetime.min, payment.id)


def _dues_from_model(kind: str, subscription) -> DuesData:
    paid = total_paid(subscription.payments)
    due = calculate_due(subscription.final_price, paid)
    history = sorted(subscription.payments, key=_payment_sort_key, reverse=True)
    return DuesData(
        subscription_id=subscription.id,
        kind=kind,
        status=subscription.status,
        final_price=to_money(subscription.final_price),
        total_paid=paid,
        due_amount=due,
        is_fully_paid=due == 0,
        paid_percent=paid_percent(subscription.final_price, paid),
        payments=[_payment_to_data(p) for p in history],
    )


async def get_dues(
    db: AsyncSession,
    kind: str,
    org_id: str,
    subscription_id: int,
    today: Optional[date] = None,
) -> DuesData:
    """Dues of one subscription with its payment history, newest first."""
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    subscription = await get_subscription_model(db, kind, org_id, subscription_id)
    return _dues_from_model(kind, subscription)


async def record_payment(
    db: AsyncSession,
    kind: str,
    org_id: str,
    subscription_id: int,
    member_id: int,
    amount: object,
    method: str,
    status: str = "paid",
    reference: Optional[str] = None,
    notes: Optional[str] = None,
    paid_at: Optional[datetime] = None,
    recorded_by: Optional[int] = None,
    today: Optional[date] = None,
) -> PaymentData:
    """
    Record a payment against a membership or training.

    The amount is not clamped to the outstanding dues, but a subscription
    that is already fully paid accepts no further payments.
    """
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    subscription = await get_subscription_model(db, kind, org_id, subscription_id)
    lifecycle.ensure_can("pay", subscription.status)

    if subscription.member_id != member_id:
        raise ValidationError("Payment member does not match the subscription's member")
    if calculate_due(subscription.final_price, total_paid(subscription.payments)) <= 0:
        raise ValidationError("Subscription has no outstanding dues")

    payment = new_payment(
        kind,
        subscription,
        amount,
        method,
        status=status,
        reference=reference,
        notes=notes,
        paid_at=paid_at,
        recorded_by=recorded_by,
    )
    try:
        db.add(payment)
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(payment)

    logger.info(
        f"Recorded {payment.status} payment {payment.id} of {payment.amount} "
        f"on {kind} {subscription_id}"
    )
    return _payment_to_data(payment)
