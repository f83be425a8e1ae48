"""
Membership, training and payment schemas

Memberships and trainings share every schema; trainings add the trainer.
Derived values (end date, price, final price) are never accepted from clients.
"""
from datetime import date, datetime
from typing import Optional, List, Literal

from pydantic import Field

from gymdesk.schemas.common import CamelModel, Money

SubscriptionStatus = Literal["active", "frozen", "cancelled", "expired"]
PaymentMethod = Literal["cash", "card", "upi", "bank_transfer", "other"]
PaymentStatus = Literal["paid", "pending", "failed", "refunded"]


class SubscriptionResponse(CamelModel):
    id: int
    kind: str
    member_id: int
    member_name: str
    plan_variant_id: int
    plan_type_id: int
    plan_name: str
    variant_name: str
    duration_days: int
    start_date: date
    end_date: date
    price_at_purchase: Money
    discount_amount: Money
    final_price: Money
    total_paid: Money
    due_amount: Money
    is_fully_paid: bool
    auto_renew: bool
    notes: Optional[str] = None
    status: SubscriptionStatus
    remaining_days: int
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    trainer_id: Optional[int] = None
    trainer_name: Optional[str] = None


class SubscriptionCreate(CamelModel):
    member_id: int
    plan_variant_id: int
    start_date: Optional[date] = None
    discount_amount: Money = Field(default=0, ge=0)
    auto_renew: bool = False
    notes: Optional[str] = None
    trainer_id: Optional[int] = None
    payment_amount: Optional[Money] = None
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = Field(default=None, max_length=120)
    payment_notes: Optional[str] = None


class SubscriptionUpdate(CamelModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    discount_amount: Optional[Money] = Field(default=None, ge=0)
    auto_renew: Optional[bool] = None
    notes: Optional[str] = None
    trainer_id: Optional[int] = None
    version: Optional[int] = Field(default=None, ge=1)


class SubscriptionStatsResponse(CamelModel):
    total: int
    active: int
    expired: int
    cancelled: int
    frozen: int
    new_this_month: int


class PaymentCreate(CamelModel):
    """Body of POST /memberships/payments and /trainings/payments"""
    membership_id: Optional[int] = None
    training_id: Optional[int] = None
    member_id: int
    amount: Money = Field(gt=0)
    method: PaymentMethod
    status: PaymentStatus = "paid"
    reference: Optional[str] = Field(default=None, max_length=120)
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None


class PaymentResponse(CamelModel):
    id: int
    member_id: int
    membership_id: Optional[int] = None
    training_id: Optional[int] = None
    amount: Money
    method: PaymentMethod
    status: PaymentStatus
    reference: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime


class DuesResponse(CamelModel):
    subscription_id: int
    kind: str
    status: SubscriptionStatus
    final_price: Money
    total_paid: Money
    due_amount: Money
    is_fully_paid: bool
    paid_percent: float
    payments: List[PaymentResponse] = []
