"""
Plan catalog models: plan types and their priced duration variants
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List
from sqlalchemy import (
    ForeignKey, Integer, Numeric, String, Text, Boolean, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from gymdesk.db.postgresql import Base, BigIntPK


class PlanType(Base):
    """Plan category, e.g. Cardio or Personal Training"""

    __tablename__ = "plan_types"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="membership")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    variants: Mapped[List["PlanVariant"]] = relationship(
        back_populates="plan_type",
        order_by="PlanVariant.duration_days",
    )

    __table_args__ = (
        CheckConstraint("category IN ('membership','training')", name="ck_plan_type_category"),
    )


class PlanVariant(Base):
    """Duration and price tier of a plan type"""

    __tablename__ = "plan_variants"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    plan_type_id: Mapped[int] = mapped_column(ForeignKey("plan_types.id"), nullable=False, index=True)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_label: Mapped[str] = mapped_column(String(50), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    plan_type: Mapped["PlanType"] = relationship(back_populates="variants")

    __table_args__ = (
        CheckConstraint("duration_days > 0", name="ck_variant_duration_positive"),
        CheckConstraint("price >= 0", name="ck_variant_price_non_negative"),
    )
