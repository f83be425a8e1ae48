"""
Payment records applied against memberships or trainings
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, TYPE_CHECKING
from sqlalchemy import (
    ForeignKey, Numeric, String, Text, CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from gymdesk.db.postgresql import Base, BigIntPK

if TYPE_CHECKING:
    from gymdesk.models.userModel import User
    from gymdesk.models.subscriptionModel import Membership, Training


PAYMENT_METHODS = ("cash", "card", "upi", "bank_transfer", "other")
PAYMENT_STATUSES = ("paid", "pending", "failed", "refunded")


class Payment(Base):
    """Append-only payment ledger"""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    member_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    membership_id: Mapped[Optional[int]] = mapped_column(ForeignKey("memberships.id"))
    training_id: Mapped[Optional[int]] = mapped_column(ForeignKey("trainings.id"))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="paid")
    reference: Mapped[Optional[str]] = mapped_column(String(120))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    paid_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    recorded_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    member: Mapped["User"] = relationship(back_populates="payments", foreign_keys=[member_id])
    membership: Mapped[Optional["Membership"]] = relationship(back_populates="payments")
    training: Mapped[Optional["Training"]] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "method IN ('cash','card','upi','bank_transfer','other')",
            name="ck_payment_method",
        ),
        CheckConstraint(
            "status IN ('paid','pending','failed','refunded')",
            name="ck_payment_status",
        ),
        CheckConstraint(
            "(membership_id IS NULL) <> (training_id IS NULL)",
            name="ck_payment_single_subscription",
        ),
        Index("idx_payments_membership", "membership_id", "paid_at"),
        Index("idx_payments_training", "training_id", "paid_at"),
        Index("idx_payments_org_paidat", "org_id", "paid_at"),
    )
