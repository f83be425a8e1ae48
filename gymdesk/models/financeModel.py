"""
Expenses and investments used by the financial reports
"""
import datetime as dt
from decimal import Decimal
from typing import Optional
from sqlalchemy import Date, Numeric, String, Text, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP

from gymdesk.db.postgresql import Base, BigIntPK


EXPENSE_CATEGORIES = ("rent", "utilities", "staff", "equipment", "marketing", "maintenance", "other")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Expense(Base):
    """Operating expense"""

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="other")
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[dt.datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        CheckConstraint(
            "category IN ('rent','utilities','staff','equipment','marketing','maintenance','other')",
            name="ck_expense_category",
        ),
        Index("idx_expenses_org_date", "org_id", "date"),
    )


class Investment(Base):
    """Capital invested in the gym, basis for ROI"""

    __tablename__ = "investments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[dt.datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_investment_amount_positive"),
    )
