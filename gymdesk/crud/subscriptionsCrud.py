from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple, Type, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gymdesk.core.conversions import to_money
from gymdesk.core.errors import ConflictError, NotFoundError, ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.models import Membership, Training, PlanVariant, User
from gymdesk.crud.plansCrud import get_plan_variant_model
from gymdesk.crud.trainersCrud import get_trainer_model
from gymdesk.services import lifecycle
from gymdesk.services.ledger import new_payment, total_paid, validate_payment
from gymdesk.services.pricing import calculate_due, calculate_end_date, calculate_final_price

logger = get_logger("crud.subscriptions")

SUBSCRIPTION_MODELS: Dict[str, Type[Union[Membership, Training]]] = {
    "membership": Membership,
    "training": Training,
}

EDITABLE_FIELDS = ("start_date", "end_date", "discount_amount", "auto_renew", "notes")


@dataclass
class SubscriptionData:
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
    price_at_purchase: Decimal
    discount_amount: Decimal
    final_price: Decimal
    total_paid: Decimal
    due_amount: Decimal
    is_fully_paid: bool
    auto_renew: bool
    notes: Optional[str]
    status: str
    remaining_days: int
    version: int
    created_at: datetime
    updated_at: Optional[datetime]
    trainer_id: Optional[int] = None
    trainer_name: Optional[str] = None


@dataclass
class InitialPayment:
    amount: Optional[Decimal] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None

    def is_empty(self) -> bool:
        return self.amount is None and not self.method and not self.reference and not self.notes


@dataclass
class SubscriptionStats:
    total: int = 0
    active: int = 0
    expired: int = 0
    cancelled: int = 0
    frozen: int = 0
    new_this_month: int = 0


@dataclass
class CreatedSubscription:
    subscription: SubscriptionData
    warnings: List[str] = field(default_factory=list)
    payment_id: Optional[int] = None


def _model_for(kind: str):
    try:
        return SUBSCRIPTION_MODELS[kind]
    except KeyError:
        raise ValidationError(f"Unknown subscription kind '{kind}'")


def _load_options(model):
    return (
        selectinload(model.member),
        selectinload(model.payments),
        selectinload(model.plan_variant).selectinload(PlanVariant.plan_type),
    )


def _subscription_to_data(kind: str, subscription, today: date) -> SubscriptionData:
    """Map a Membership/Training model to SubscriptionData, relationships must be loaded."""
    variant = subscription.plan_variant
    paid = total_paid(subscription.payments)
    due = calculate_due(subscription.final_price, paid)
    remaining = (subscription.end_date - today).days if subscription.end_date > today else 0
    return SubscriptionData(
        id=subscription.id,
        kind=kind,
        member_id=subscription.member_id,
        member_name=subscription.member.full_name if subscription.member else "",
        plan_variant_id=subscription.plan_variant_id,
        plan_type_id=variant.plan_type_id,
        plan_name=variant.plan_type.name,
        variant_name=variant.duration_label,
        duration_days=variant.duration_days,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        price_at_purchase=to_money(subscription.price_at_purchase),
        discount_amount=to_money(subscription.discount_amount),
        final_price=to_money(subscription.final_price),
        total_paid=paid,
        due_amount=due,
        is_fully_paid=due == 0,
        auto_renew=subscription.auto_renew,
        notes=subscription.notes,
        status=subscription.status,
        remaining_days=remaining,
        version=subscription.version,
        created_at=subscription.created_at,
        updated_at=subscription.updated_at,
        trainer_id=getattr(subscription, "trainer_id", None),
        trainer_name=getattr(subscription, "trainer_name", None),
    )


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------

async def expire_overdue_subscriptions(
    db: AsyncSession,
    today: Optional[date] = None,
    org_id: Optional[str] = None,
    kinds: Tuple[str, ...] = ("membership", "training"),
    commit: bool = True,
) -> int:
    """
    Flip active subscriptions whose end date has passed to expired.

    Runs lazily before subscription reads and mutations, and as a batch
    sweep from the expire_subscriptions script. Returns how many rows changed.
    """
    today = today or date.today()
    changed = 0
    for kind in kinds:
        model = _model_for(kind)
        stmt = select(model).where(
            model.status == lifecycle.ACTIVE,
            model.end_date < today,
        )
        if org_id is not None:
            stmt = stmt.where(model.org_id == org_id)
        res = await db.execute(stmt)
        for subscription in res.scalars().all():
            subscription.status = lifecycle.EXPIRED
            changed += 1

    if changed:
        await db.flush()
        if commit:
            await db.commit()
        logger.info(f"Expired {changed} overdue subscriptions (org={org_id or 'all'})")
    return changed


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_subscription_model(
    db: AsyncSession, kind: str, org_id: str, subscription_id: int
):
    model = _model_for(kind)
    res = await db.execute(
        select(model)
        .options(*_load_options(model))
        .where(model.id == subscription_id, model.org_id == org_id)
        .execution_options(populate_existing=True)
    )
    subscription = res.scalar_one_or_none()
    if subscription is None:
        raise NotFoundError(f"{kind.capitalize()} {subscription_id} not found")
    return subscription


async def get_subscription(
    db: AsyncSession,
    kind: str,
    org_id: str,
    subscription_id: int,
    today: Optional[date] = None,
) -> SubscriptionData:
    today = today or date.today()
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    subscription = await get_subscription_model(db, kind, org_id, subscription_id)
    return _subscription_to_data(kind, subscription, today)


async def list_subscriptions(
    db: AsyncSession,
    kind: str,
    org_id: str,
    status: Optional[str] = None,
    member_id: Optional[int] = None,
    limit: int = 10,
    offset: int = 0,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """List subscriptions newest first with their dues."""
    today = today or date.today()
    model = _model_for(kind)
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))

    filters = [model.org_id == org_id]
    if status:
        if status not in lifecycle.CAPABILITIES:
            raise ValidationError(f"Invalid status '{status}'")
        filters.append(model.status == status)
    if member_id is not None:
        filters.append(model.member_id == member_id)

    total = (
        await db.execute(select(func.count()).select_from(model).where(*filters))
    ).scalar_one()
    res = await db.execute(
        select(model)
        .options(*_load_options(model))
        .where(*filters)
        .order_by(model.start_date.desc(), model.id.desc())
        .offset(offset)
        .limit(limit)
    )
    items = [_subscription_to_data(kind, s, today) for s in res.scalars().all()]
    return {"items": items, "total": total}


async def list_member_subscriptions(
    db: AsyncSession,
    kind: str,
    org_id: str,
    member_id: int,
    today: Optional[date] = None,
) -> List[SubscriptionData]:
    today = today or date.today()
    model = _model_for(kind)
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    res = await db.execute(
        select(model)
        .options(*_load_options(model))
        .where(model.org_id == org_id, model.member_id == member_id)
        .order_by(model.start_date.desc(), model.id.desc())
    )
    return [_subscription_to_data(kind, s, today) for s in res.scalars().all()]


async def get_active_subscription(
    db: AsyncSession,
    kind: str,
    org_id: str,
    member_id: int,
    today: Optional[date] = None,
) -> Optional[SubscriptionData]:
    """Latest active subscription of the member, or None."""
    today = today or date.today()
    model = _model_for(kind)
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    res = await db.execute(
        select(model)
        .options(*_load_options(model))
        .where(
            model.org_id == org_id,
            model.member_id == member_id,
            model.status == lifecycle.ACTIVE,
        )
        .order_by(model.end_date.desc(), model.id.desc())
        .limit(1)
    )
    subscription = res.scalar_one_or_none()
    return _subscription_to_data(kind, subscription, today) if subscription else None


async def subscription_stats(
    db: AsyncSession,
    kind: str,
    org_id: str,
    today: Optional[date] = None,
) -> SubscriptionStats:
    today = today or date.today()
    model = _model_for(kind)
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))

    res = await db.execute(
        select(model.status, func.count())
        .where(model.org_id == org_id)
        .group_by(model.status)
    )
    stats = SubscriptionStats()
    for status, count in res.all():
        setattr(stats, status, count)
        stats.total += count

    month_start = today.replace(day=1)
    stats.new_this_month = (
        await db.execute(
            select(func.count())
            .select_from(model)
            .where(model.org_id == org_id, model.start_date >= month_start)
        )
    ).scalar_one()
    return stats


async def list_expiring(
    db: AsyncSession,
    kind: str,
    org_id: str,
    days: int = 7,
    today: Optional[date] = None,
) -> List[SubscriptionData]:
    """Active subscriptions ending within the next ``days`` days, soonest first."""
    if days < 0:
        raise ValidationError("Days must not be negative")
    today = today or date.today()
    model = _model_for(kind)
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    res = await db.execute(
        select(model)
        .options(*_load_options(model))
        .where(
            model.org_id == org_id,
            model.status == lifecycle.ACTIVE,
            model.end_date >= today,
            model.end_date <= today + timedelta(days=days),
        )
        .order_by(model.end_date, model.id)
    )
    return [_subscription_to_data(kind, s, today) for s in res.scalars().all()]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def _get_active_member(db: AsyncSession, org_id: str, member_id: int) -> User:
    res = await db.execute(
        select(User).where(User.id == member_id, User.org_id == org_id)
    )
    member = res.scalar_one_or_none()
    if member is None:
        raise NotFoundError(f"Member {member_id} not found")
    if not member.is_active:
        raise ValidationError("Member is inactive")
    return member


async def create_subscription(
    db: AsyncSession,
    kind: str,
    org_id: str,
    member_id: int,
    plan_variant_id: int,
    start_date: Optional[date] = None,
    discount_amount: object = None,
    auto_renew: bool = False,
    notes: Optional[str] = None,
    trainer_id: Optional[int] = None,
    payment: Optional[InitialPayment] = None,
    recorded_by: Optional[int] = None,
    today: Optional[date] = None,
) -> CreatedSubscription:
    """
    Create a membership or training from a plan variant.

    Price, final price and end date are always derived here from the
    variant; the optional initial payment is written in the same transaction.
    """
    model = _model_for(kind)
    today = today or date.today()

    variant = await get_plan_variant_model(db, org_id, plan_variant_id)
    if not variant.is_active or not variant.plan_type.is_active:
        raise ValidationError("Selected plan variant is not available")
    if variant.plan_type.category != kind:
        raise ValidationError(
            f"Plan variant {plan_variant_id} belongs to a {variant.plan_type.category} plan, "
            f"not a {kind} plan"
        )

    member = await _get_active_member(db, org_id, member_id)

    trainer = None
    if kind == "training":
        if trainer_id is None:
            raise ValidationError("Trainer is required for trainings")
        trainer = await get_trainer_model(db, org_id, trainer_id)
        if not trainer.is_active:
            raise ValidationError("Trainer is inactive")

    if payment is not None and not payment.is_empty():
        validate_payment(payment.amount, payment.method)
    else:
        payment = None

    start_date = start_date or today
    price = to_money(variant.price)
    discount = to_money(discount_amount)
    final_price = calculate_final_price(price, discount)

    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,), commit=False)
    warnings: List[str] = []
    existing = await db.execute(
        select(func.count())
        .select_from(model)
        .where(
            model.org_id == org_id,
            model.member_id == member.id,
            model.status == lifecycle.ACTIVE,
        )
    )
    if existing.scalar_one() > 0:
        warnings.append(f"Member already has an active {kind}")

    subscription = model(
        org_id=org_id,
        member_id=member.id,
        plan_variant_id=variant.id,
        start_date=start_date,
        end_date=calculate_end_date(start_date, variant.duration_days),
        price_at_purchase=price,
        discount_amount=discount,
        final_price=final_price,
        auto_renew=bool(auto_renew),
        notes=notes,
        status=lifecycle.ACTIVE,
    )
    if trainer is not None:
        subscription.trainer_id = trainer.id
        subscription.trainer_name = trainer.name

    try:
        db.add(subscription)
        await db.flush()

        payment_id = None
        if payment is not None:
            record = new_payment(
                kind,
                subscription,
                payment.amount,
                payment.method,
                reference=payment.reference,
                notes=payment.notes,
                recorded_by=recorded_by,
            )
            db.add(record)
            await db.flush()
            payment_id = record.id

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Created {kind} {subscription.id} for member {member.id} "
        f"(variant {variant.id}, final {final_price})"
    )
    data = await get_subscription(db, kind, org_id, subscription.id, today=today)
    return CreatedSubscription(subscription=data, warnings=warnings, payment_id=payment_id)


def _check_version(subscription, expected_version: Optional[int]) -> None:
    if expected_version is not None and subscription.version != expected_version:
        raise ConflictError(
            "Subscription was modified by someone else; reload and try again"
        )


async def update_subscription(
    db: AsyncSession,
    kind: str,
    org_id: str,
    subscription_id: int,
    changes: Dict[str, Any],
    expected_version: Optional[int] = None,
    today: Optional[date] = None,
) -> SubscriptionData:
    today = today or date.today()
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    subscription = await get_subscription_model(db, kind, org_id, subscription_id)
    _check_version(subscription, expected_version)

    allowed = EDITABLE_FIELDS + (("trainer_id",) if kind == "training" else ())
    changes = {k: v for k, v in changes.items() if k in allowed}
    lifecycle.ensure_can_edit(subscription.status, changes.keys())

    start_date = changes.get("start_date", subscription.start_date)
    end_date = changes.get("end_date", subscription.end_date)
    if start_date is None or end_date is None:
        raise ValidationError("Start and end dates cannot be empty")
    if end_date < start_date:
        raise ValidationError("End date must be on or after the start date")

    if "discount_amount" in changes:
        discount = to_money(changes["discount_amount"])
        subscription.final_price = calculate_final_price(subscription.price_at_purchase, discount)
        subscription.discount_amount = discount

    if "trainer_id" in changes:
        trainer = await get_trainer_model(db, org_id, changes["trainer_id"])
        if not trainer.is_active:
            raise ValidationError("Trainer is inactive")
        subscription.trainer_id = trainer.id
        subscription.trainer_name = trainer.name

    subscription.start_date = start_date
    subscription.end_date = end_date
    if "auto_renew" in changes:
        subscription.auto_renew = bool(changes["auto_renew"])
    if "notes" in changes:
        subscription.notes = changes["notes"]

    try:
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await get_subscription(db, kind, org_id, subscription_id, today=today)


async def transition_subscription(
    db: AsyncSession,
    kind: str,
    org_id: str,
    subscription_id: int,
    action: str,
    expected_version: Optional[int] = None,
    today: Optional[date] = None,
) -> SubscriptionData:
    """Apply freeze, unfreeze or cancel. Dates and prices are left untouched."""
    today = today or date.today()
    await expire_overdue_subscriptions(db, today, org_id, kinds=(kind,))
    subscription = await get_subscription_model(db, kind, org_id, subscription_id)
    _check_version(subscription, expected_version)

    previous = subscription.status
    subscription.status = lifecycle.next_status(action, previous)

    try:
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind.capitalize()} {subscription_id}: {previous} -> {subscription.status} ({action})")
    return await get_subscription(db, kind, org_id, subscription_id, today=today)


async def freeze_subscription(db, kind, org_id, subscription_id, **kwargs) -> SubscriptionData:
    return await transition_subscription(db, kind, org_id, subscription_id, "freeze", **kwargs)


async def unfreeze_subscription(db, kind, org_id, subscription_id, **kwargs) -> SubscriptionData:
    return await transition_subscription(db, kind, org_id, subscription_id, "unfreeze", **kwargs)


async def cancel_subscription(db, kind, org_id, subscription_id, **kwargs) -> SubscriptionData:
    return await transition_subscription(db, kind, org_id, subscription_id, "cancel", **kwargs)
