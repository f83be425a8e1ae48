"""
Payment ledger helpers shared by subscription creation and payment recording
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from gymdesk.core.conversions import to_money
from gymdesk.core.errors import ValidationError
from gymdesk.models import Payment
from gymdesk.models.paymentModel import PAYMENT_METHODS, PAYMENT_STATUSES


def validate_payment(amount: object, method: Optional[str], status: str = "paid") -> Decimal:
    """Return the amount as money after checking amount, method and status."""
    if amount is None:
        raise ValidationError("Payment amount is required")
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    if not method:
        raise ValidationError("Payment method is required")
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{method}', expected one of {', '.join(PAYMENT_METHODS)}"
        )
    if status not in PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment status '{status}'")
    return amount


def total_paid(payments: Iterable[Payment]) -> Decimal:
    """Only settled payments count towards the dues."""
    return to_money(sum((to_money(p.amount) for p in payments if p.status == "paid"), Decimal("0")))


def new_payment(
    kind: str,
    subscription,
    amount: object,
    method: Optional[str],
    status: str = "paid",
    reference: Optional[str] = None,
    notes: Optional[str] = None,
    paid_at: Optional[datetime] = None,
    recorded_by: Optional[int] = None,
) -> Payment:
    """Build a Payment linked to a membership or a training, not yet added to a session."""
    amount = validate_payment(amount, method, status)
    payment = Payment(
        org_id=subscription.org_id,
        member_id=subscription.member_id,
        amount=amount,
        method=method,
        status=status,
        reference=reference,
        notes=notes,
        paid_at=paid_at or datetime.now(timezone.utc),
        recorded_by=recorded_by,
    )
    # through the relationship so a loaded payments collection stays current
    if kind == "membership":
        payment.membership = subscription
    else:
        payment.training = subscription
    return payment
