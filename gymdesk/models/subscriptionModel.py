"""
Membership and training subscriptions.

Both tables share one shape: a snapshot of the plan variant's price and
duration taken at purchase time, plus the lifecycle status.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import (
    Date, ForeignKey, Integer, Numeric, String, Text, Boolean, CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, declared_attr
from sqlalchemy import TIMESTAMP

from gymdesk.db.postgresql import Base, BigIntPK

if TYPE_CHECKING:
    from gymdesk.models.userModel import User, Trainer
    from gymdesk.models.planModel import PlanVariant
    from gymdesk.models.paymentModel import Payment


SUBSCRIPTION_STATUSES = ("active", "frozen", "cancelled", "expired")


class SubscriptionMixin:
    """Columns shared by memberships and trainings"""

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    price_at_purchase: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    final_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    @declared_attr
    def member_id(cls) -> Mapped[int]:
        return mapped_column(ForeignKey("users.id"), nullable=False)

    @declared_attr
    def plan_variant_id(cls) -> Mapped[int]:
        return mapped_column(ForeignKey("plan_variants.id"), nullable=False)

    @declared_attr
    def plan_variant(cls) -> Mapped["PlanVariant"]:
        return relationship()

    @declared_attr.directive
    def __mapper_args__(cls):
        return {"version_id_col": cls.__table__.c.version}


class Membership(SubscriptionMixin, Base):
    """Gym membership purchased by a member"""

    __tablename__ = "memberships"

    # Relationships
    member: Mapped["User"] = relationship(back_populates="memberships")
    payments: Mapped[List["Payment"]] = relationship(back_populates="membership")

    __table_args__ = (
        CheckConstraint("status IN ('active','frozen','cancelled','expired')", name="ck_membership_status"),
        CheckConstraint("discount_amount >= 0", name="ck_membership_discount"),
        Index("idx_memberships_member", "org_id", "member_id", "status"),
        Index("idx_memberships_end", "org_id", "status", "end_date"),
    )


class Training(SubscriptionMixin, Base):
    """Personal training package assigned to a trainer"""

    __tablename__ = "trainings"

    trainer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("trainers.id"))
    trainer_name: Mapped[str] = mapped_column(String(150), nullable=False)

    # Relationships
    member: Mapped["User"] = relationship(back_populates="trainings")
    trainer: Mapped[Optional["Trainer"]] = relationship(back_populates="trainings")
    payments: Mapped[List["Payment"]] = relationship(back_populates="training")

    __table_args__ = (
        CheckConstraint("status IN ('active','frozen','cancelled','expired')", name="ck_training_status"),
        CheckConstraint("discount_amount >= 0", name="ck_training_discount"),
        Index("idx_trainings_member", "org_id", "member_id", "status"),
        Index("idx_trainings_end", "org_id", "status", "end_date"),
    )
