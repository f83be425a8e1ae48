"""
User and trainer models for GymDesk
Members, trainers and admins share the users table and differ by role
"""
from datetime import date, datetime, timezone
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import (
    Date, Boolean, String, Text, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import TIMESTAMP

from gymdesk.db.postgresql import Base, BigIntPK

if TYPE_CHECKING:
    from gymdesk.models.subscriptionModel import Membership, Training
    from gymdesk.models.paymentModel import Payment


class User(Base):
    """Organization users; role decides what they can do"""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    external_id: Mapped[Optional[str]] = mapped_column(String(128))
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[Optional[str]] = mapped_column(String(200))
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date)
    gender: Mapped[Optional[str]] = mapped_column(String(20))
    join_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    memberships: Mapped[List["Membership"]] = relationship(back_populates="member")
    trainings: Mapped[List["Training"]] = relationship(back_populates="member")
    payments: Mapped[List["Payment"]] = relationship(
        back_populates="member",
        foreign_keys="Payment.member_id",
    )

    __table_args__ = (
        CheckConstraint("role IN ('member','trainer','admin')", name="ck_user_role"),
        UniqueConstraint("org_id", "external_id", name="uq_user_org_external"),
        Index("idx_users_org_role", "org_id", "role"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Trainer(Base):
    """Trainer roster referenced by trainings"""

    __tablename__ = "trainers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    trainings: Mapped[List["Training"]] = relationship(back_populates="trainer")
