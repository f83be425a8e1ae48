import strawberry
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from gymdesk.core.errors import GymDeskError
from gymdesk.crud.paymentsCrud import record_payment
from gymdesk.crud.subscriptionsCrud import (
    InitialPayment,
    create_subscription,
    transition_subscription,
)
from gymdesk.graphql.auth.permissions import IsStaff
from gymdesk.graphql.subscriptions.types import (
    CreateSubscriptionInput,
    PaymentRecord,
    PaymentResponse,
    RecordPaymentInput,
    Subscription,
    SubscriptionKind,
    SubscriptionResponse,
)

STALE_MESSAGE = "Subscription was modified by someone else; reload and try again"


async def _transition(info: strawberry.Info, kind: SubscriptionKind, subscription_id: int, action: str) -> SubscriptionResponse:
    db: AsyncSession = info.context.db
    try:
        data = await transition_subscription(
            db, kind.value, info.context.org_id, subscription_id, action
        )
        return SubscriptionResponse(
            subscription=Subscription.from_data(data),
            success=True,
            message=f"{kind.value.capitalize()} is now {data.status}",
        )
    except GymDeskError as e:
        await db.rollback()
        return SubscriptionResponse(subscription=None, success=False, message=e.message)
    except StaleDataError:
        await db.rollback()
        return SubscriptionResponse(subscription=None, success=False, message=STALE_MESSAGE)


@strawberry.type
class SubscriptionsMutation:
    @strawberry.mutation(permission_classes=[IsStaff])
    async def create_subscription(self, info: strawberry.Info, input: CreateSubscriptionInput) -> SubscriptionResponse:
        """Create a membership or training, with an optional initial payment"""
        db: AsyncSession = info.context.db
        try:
            created = await create_subscription(
                db,
                input.kind.value,
                info.context.org_id,
                member_id=input.member_id,
                plan_variant_id=input.plan_variant_id,
                start_date=input.start_date,
                discount_amount=input.discount_amount,
                auto_renew=input.auto_renew,
                notes=input.notes,
                trainer_id=input.trainer_id,
                payment=InitialPayment(
                    amount=input.payment_amount,
                    method=input.payment_method,
                    reference=input.payment_reference,
                    notes=input.payment_notes,
                ),
                recorded_by=info.context.user.id,
            )
            return SubscriptionResponse(
                subscription=Subscription.from_data(created.subscription),
                success=True,
                message=f"{input.kind.value.capitalize()} created",
                warnings=created.warnings,
            )
        except GymDeskError as e:
            await db.rollback()
            return SubscriptionResponse(subscription=None, success=False, message=e.message)

    @strawberry.mutation(permission_classes=[IsStaff])
    async def freeze_subscription(self, info: strawberry.Info, kind: SubscriptionKind, subscription_id: int) -> SubscriptionResponse:
        return await _transition(info, kind, subscription_id, "freeze")

    @strawberry.mutation(permission_classes=[IsStaff])
    async def unfreeze_subscription(self, info: strawberry.Info, kind: SubscriptionKind, subscription_id: int) -> SubscriptionResponse:
        return await _transition(info, kind, subscription_id, "unfreeze")

    @strawberry.mutation(permission_classes=[IsStaff])
    async def cancel_subscription(self, info: strawberry.Info, kind: SubscriptionKind, subscription_id: int) -> SubscriptionResponse:
        return await _transition(info, kind, subscription_id, "cancel")

    @strawberry.mutation(permission_classes=[IsStaff])
    async def record_payment(self, info: strawberry.Info, input: RecordPaymentInput) -> PaymentResponse:
        """Record a payment against a membership or training"""
        db: AsyncSession = info.context.db
        try:
            data = await record_payment(
                db,
                input.kind.value,
                info.context.org_id,
                input.subscription_id,
                member_id=input.member_id,
                amount=input.amount,
                method=input.method,
                status=input.status,
                reference=input.reference,
                notes=input.notes,
                recorded_by=info.context.user.id,
            )
            return PaymentResponse(payment=PaymentRecord.from_data(data), success=True, message="Payment recorded")
        except GymDeskError as e:
            await db.rollback()
            return PaymentResponse(payment=None, success=False, message=e.message)
