"""
Membership and training API

Both resources expose the same routes, so one factory builds the router for
each subscription kind.
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.api.deps import CurrentUser, require_staff
from gymdesk.api.envelope import PageParams, dump, dump_list, ok, page_params, pagination
from gymdesk.core.config import EXPIRING_DAYS_DEFAULT
from gymdesk.core.errors import ValidationError
from gymdesk.crud import paymentsCrud, subscriptionsCrud
from gymdesk.db.postgresql import get_db
from gymdesk.schemas.common import VersionedAction
from gymdesk.schemas.subscriptions import (
    DuesResponse,
    PaymentCreate,
    PaymentResponse,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionStatsResponse,
    SubscriptionStatus,
    SubscriptionUpdate,
)

LIFECYCLE_MESSAGES = {
    "freeze": "frozen",
    "unfreeze": "unfrozen",
    "cancel": "cancelled",
}


def build_subscription_router(kind: str) -> APIRouter:
    router = APIRouter()
    label = kind.capitalize()

    @router.get("")
    async def list_subscriptions(
        status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
        member_id: Optional[int] = Query(None, alias="memberId"),
        page: PageParams = Depends(page_params),
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        result = await subscriptionsCrud.list_subscriptions(
            db,
            kind,
            user.org_id,
            status=status_filter,
            member_id=member_id,
            limit=page.limit,
            offset=page.offset,
        )
        return ok(
            dump_list(SubscriptionResponse, result["items"]),
            page=pagination(page, result["total"]),
        )

    @router.get("/stats")
    async def get_stats(
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        stats = await subscriptionsCrud.subscription_stats(db, kind, user.org_id)
        return ok(dump(SubscriptionStatsResponse, stats))

    @router.get("/expiring")
    async def list_expiring(
        days: int = Query(EXPIRING_DAYS_DEFAULT, ge=0, le=365),
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        items = await subscriptionsCrud.list_expiring(db, kind, user.org_id, days=days)
        return ok(dump_list(SubscriptionResponse, items))

    @router.get("/member/{member_id}")
    async def list_member_subscriptions(
        member_id: int,
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        items = await subscriptionsCrud.list_member_subscriptions(db, kind, user.org_id, member_id)
        return ok(dump_list(SubscriptionResponse, items))

    @router.get("/member/{member_id}/active")
    async def get_member_active(
        member_id: int,
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        active = await subscriptionsCrud.get_active_subscription(db, kind, user.org_id, member_id)
        return ok(dump(SubscriptionResponse, active))

    @router.post("/payments", status_code=status.HTTP_201_CREATED)
    async def record_payment(
        body: PaymentCreate,
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        subscription_id = body.membership_id if kind == "membership" else body.training_id
        if subscription_id is None:
            raise ValidationError(f"{kind}Id is required")
        payment = await paymentsCrud.record_payment(
            db,
            kind,
            user.org_id,
            subscription_id,
            member_id=body.member_id,
            amount=body.amount,
            method=body.method,
            status=body.status,
            reference=body.reference,
            notes=body.notes,
            paid_at=body.paid_at,
            recorded_by=user.id,
        )
        return ok(dump(PaymentResponse, payment), message="Payment recorded")

    @router.get("/{subscription_id}")
    async def get_subscription(
        subscription_id: int,
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        subscription = await subscriptionsCrud.get_subscription(db, kind, user.org_id, subscription_id)
        return ok(dump(SubscriptionResponse, subscription))

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_subscription(
        body: SubscriptionCreate,
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        payment = subscriptionsCrud.InitialPayment(
            amount=body.payment_amount,
            method=body.payment_method,
            reference=body.payment_reference,
            notes=body.payment_notes,
        )
        created = await subscriptionsCrud.create_subscription(
            db,
            kind,
            user.org_id,
            member_id=body.member_id,
            plan_variant_id=body.plan_variant_id,
            start_date=body.start_date,
            discount_amount=body.discount_amount,
            auto_renew=body.auto_renew,
            notes=body.notes,
            trainer_id=body.trainer_id,
            payment=payment,
            recorded_by=user.id,
        )
        return ok(
            dump(SubscriptionResponse, created.subscription),
            message=f"{label} created",
            warnings=created.warnings,
        )

    @router.patch("/{subscription_id}")
    async def update_subscription(
        subscription_id: int,
        body: SubscriptionUpdate,
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        changes = body.model_dump(exclude_unset=True)
        expected_version = changes.pop("version", None)
        subscription = await subscriptionsCrud.update_subscription(
            db, kind, user.org_id, subscription_id, changes, expected_version=expected_version
        )
        return ok(dump(SubscriptionResponse, subscription), message=f"{label} updated")

    def _lifecycle_route(action: str):
        async def apply_action(
            subscription_id: int,
            body: Optional[VersionedAction] = Body(default=None),
            user: CurrentUser = Depends(require_staff),
            db: AsyncSession = Depends(get_db),
        ):
            subscription = await subscriptionsCrud.transition_subscription(
                db,
                kind,
                user.org_id,
                subscription_id,
                action,
                expected_version=body.version if body else None,
            )
            return ok(
                dump(SubscriptionResponse, subscription),
                message=f"{label} {LIFECYCLE_MESSAGES[action]}",
            )
        apply_action.__name__ = f"{action}_{kind}"
        return apply_action

    for action in ("cancel", "freeze", "unfreeze"):
        router.add_api_route(f"/{{subscription_id}}/{action}", _lifecycle_route(action), methods=["PUT"])

    @router.get("/{subscription_id}/dues")
    async def get_dues(
        subscription_id: int,
        user: CurrentUser = Depends(require_staff),
        db: AsyncSession = Depends(get_db),
    ):
        dues = await paymentsCrud.get_dues(db, kind, user.org_id, subscription_id)
        return ok(dump(DuesResponse, dues))

    return router


memberships_router = build_subscription_router("membership")
trainings_router = build_subscription_router("training")
