from datetime import date, datetime
from enum import Enum
from typing import List, Optional

import strawberry

from gymdesk.crud.paymentsCrud import DuesData, PaymentData
from gymdesk.crud.reportsCrud import DuesBreakdownItem, MemberDuesData
from gymdesk.crud.subscriptionsCrud import SubscriptionData


@strawberry.enum
class SubscriptionKind(Enum):
    MEMBERSHIP = "membership"
    TRAINING = "training"


@strawberry.type
class Subscription:
    id: int
    kind: str
    member_id: int
    member_name: str
    plan_variant_id: int
    plan_name: str
    variant_name: str
    start_date: date
    end_date: date
    price_at_purchase: float
    discount_amount: float
    final_price: float
    total_paid: float
    due_amount: float
    is_fully_paid: bool
    auto_renew: bool
    notes: Optional[str]
    status: str
    remaining_days: int
    version: int
    trainer_id: Optional[int]
    trainer_name: Optional[str]

    @classmethod
    def from_data(cls, data: SubscriptionData) -> "Subscription":
        return cls(
            id=data.id,
            kind=data.kind,
            member_id=data.member_id,
            member_name=data.member_name,
            plan_variant_id=data.plan_variant_id,
            plan_name=data.plan_name,
            variant_name=data.variant_name,
            start_date=data.start_date,
            end_date=data.end_date,
            price_at_purchase=float(data.price_at_purchase),
            discount_amount=float(data.discount_amount),
            final_price=float(data.final_price),
            total_paid=float(data.total_paid),
            due_amount=float(data.due_amount),
            is_fully_paid=data.is_fully_paid,
            auto_renew=data.auto_renew,
            notes=data.notes,
            status=data.status,
            remaining_days=data.remaining_days,
            version=data.version,
            trainer_id=data.trainer_id,
            trainer_name=data.trainer_name,
        )


@strawberry.type
class PaymentRecord:
    id: int
    member_id: int
    membership_id: Optional[int]
    training_id: Optional[int]
    amount: float
    method: str
    status: str
    reference: Optional[str]
    notes: Optional[str]
    paid_at: Optional[datetime]

    @classmethod
    def from_data(cls, data: PaymentData) -> "PaymentRecord":
        return cls(
            id=data.id,
            member_id=data.member_id,
            membership_id=data.membership_id,
            training_id=data.training_id,
            amount=float(data.amount),
            method=data.method,
            status=data.status,
            reference=data.reference,
            notes=data.notes,
            paid_at=data.paid_at,
        )


@strawberry.type
class Dues:
    subscription_id: int
    final_price: float
    total_paid: float
    due_amount: float
    is_fully_paid: bool
    paid_percent: float
    payments: List[PaymentRecord]

    @classmethod
    def from_data(cls, data: DuesData) -> "Dues":
        return cls(
            subscription_id=data.subscription_id,
            final_price=float(data.final_price),
            total_paid=float(data.total_paid),
            due_amount=float(data.due_amount),
            is_fully_paid=data.is_fully_paid,
            paid_percent=data.paid_percent,
            payments=[PaymentRecord.from_data(p) for p in data.payments],
        )


@strawberry.type
class DuesBreakdown:
    subscription_id: int
    plan_name: str
    variant_name: str
    final_price: float
    total_paid: float
    due_amount: float
    status: str
    end_date: date

    @classmethod
    def from_data(cls, data: DuesBreakdownItem) -> "DuesBreakdown":
        return cls(
            subscription_id=data.subscription_id,
            plan_name=data.plan_name,
            variant_name=data.variant_name,
            final_price=float(data.final_price),
            total_paid=float(data.total_paid),
            due_amount=float(data.due_amount),
            status=data.status,
            end_date=data.end_date,
        )


@strawberry.type
class MemberDues:
    member_id: int
    member_name: str
    membership_dues_total: float
    training_dues_total: float
    total_due: float
    memberships: List[DuesBreakdown]
    trainings: List[DuesBreakdown]

    @classmethod
    def from_data(cls, data: MemberDuesData) -> "MemberDues":
        return cls(
            member_id=data.member_id,
            member_name=data.member_name,
            membership_dues_total=float(data.membership_dues_total),
            training_dues_total=float(data.training_dues_total),
            total_due=float(data.total_due),
            memberships=[DuesBreakdown.from_data(i) for i in data.memberships],
            trainings=[DuesBreakdown.from_data(i) for i in data.trainings],
        )


@strawberry.type
class DuesReport:
    members: List[MemberDues]
    total_members_with_dues: int
    grand_total: float


@strawberry.input
class CreateSubscriptionInput:
    kind: SubscriptionKind
    member_id: int
    plan_variant_id: int
    start_date: Optional[date] = None
    discount_amount: float = 0
    auto_renew: bool = False
    notes: Optional[str] = None
    trainer_id: Optional[int] = None
    payment_amount: Optional[float] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_notes: Optional[str] = None


@strawberry.input
class RecordPaymentInput:
    kind: SubscriptionKind
    subscription_id: int
    member_id: int
    amount: float
    method: str
    status: str = "paid"
    reference: Optional[str] = None
    notes: Optional[str] = None


@strawberry.type
class SubscriptionResponse:
    subscription: Optional[Subscription]
    success: bool
    message: str
    warnings: List[str] = strawberry.field(default_factory=list)


@strawberry.type
class PaymentResponse:
    payment: Optional[PaymentRecord]
    success: bool
    message: str
