from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gymdesk.core.conversions import to_money
from gymdesk.core.errors import ConflictError, NotFoundError, ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.models import PlanType, PlanVariant, Membership, Training
from gymdesk.services.pricing import resolve_duration_label

logger = get_logger("crud.plans")

PLAN_CATEGORIES = ("membership", "training")


@dataclass
class PlanVariantData:
    id: int
    plan_type_id: int
    duration_days: int
    duration_label: str
    price: Decimal
    is_active: bool
    created_at: datetime


@dataclass
class PlanTypeData:
    id: int
    name: str
    description: Optional[str]
    category: str
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime]
    variants: List[PlanVariantData] = field(default_factory=list)


def _variant_to_data(variant: PlanVariant) -> PlanVariantData:
    """Map PlanVariant model to PlanVariantData DTO."""
    return PlanVariantData(
        id=variant.id,
        plan_type_id=variant.plan_type_id,
        duration_days=variant.duration_days,
        duration_label=variant.duration_label,
        price=to_money(variant.price),
        is_active=variant.is_active,
        created_at=variant.created_at,
    )


def _plan_type_to_data(
    plan_type: PlanType, include_inactive_variants: bool = True
) -> PlanTypeData:
    """Map PlanType model to PlanTypeData DTO, variants must be loaded."""
    variants = [
        _variant_to_data(v)
        for v in plan_type.variants
        if include_inactive_variants or v.is_active
    ]
    return PlanTypeData(
        id=plan_type.id,
        name=plan_type.name,
        description=plan_type.description,
        category=plan_type.category,
        is_active=plan_type.is_active,
        created_at=plan_type.created_at,
        updated_at=plan_type.updated_at,
        variants=variants,
    )


def _check_category(category: str) -> None:
    if category not in PLAN_CATEGORIES:
        raise ValidationError(
            f"Invalid category '{category}', expected one of {', '.join(PLAN_CATEGORIES)}"
        )


def _check_price(price: object) -> Decimal:
    if price is None:
        raise ValidationError("Price is required")
    price = to_money(price)
    if price < 0:
        raise ValidationError("Price cannot be negative")
    return price


# ---------------------------------------------------------------------------
# Plan types
# ---------------------------------------------------------------------------

async def get_plan_type_model(db: AsyncSession, org_id: str, plan_type_id: int) -> PlanType:
    res = await db.execute(
        select(PlanType)
        .options(selectinload(PlanType.variants))
        .where(PlanType.id == plan_type_id, PlanType.org_id == org_id)
        .execution_options(populate_existing=True)
    )
    plan_type = res.scalar_one_or_none()
    if plan_type is None:
        raise NotFoundError(f"Plan type {plan_type_id} not found")
    return plan_type


async def get_plan_type(db: AsyncSession, org_id: str, plan_type_id: int) -> PlanTypeData:
    return _plan_type_to_data(await get_plan_type_model(db, org_id, plan_type_id))


async def list_plan_types(
    db: AsyncSession,
    org_id: str,
    category: Optional[str] = None,
    include_inactive: bool = False,
) -> List[PlanTypeData]:
    """
    List plan types with their variants.

    The default listing is what a purchase form offers: active plan types and
    only their active variants. ``include_inactive`` returns everything.
    """
    stmt = (
        select(PlanType)
        .options(selectinload(PlanType.variants))
        .where(PlanType.org_id == org_id)
        .order_by(PlanType.name, PlanType.id)
        .execution_options(populate_existing=True)
    )
    if category:
        _check_category(category)
        stmt = stmt.where(PlanType.category == category)
    if not include_inactive:
        stmt = stmt.where(PlanType.is_active.is_(True))

    res = await db.execute(stmt)
    return [
        _plan_type_to_data(pt, include_inactive_variants=include_inactive)
        for pt in res.scalars().all()
    ]


async def create_plan_type(
    db: AsyncSession,
    org_id: str,
    name: str,
    category: str,
    description: Optional[str] = None,
    is_active: bool = True,
    commit: bool = True,
) -> PlanTypeData:
    if not name or not name.strip():
        raise ValidationError("Plan name is required")
    _check_category(category)

    plan_type = PlanType(
        org_id=org_id,
        name=name.strip(),
        description=description,
        category=category,
        is_active=is_active,
    )
    db.add(plan_type)
    await db.flush()
    if commit:
        await db.commit()
    logger.info(f"Created {category} plan type {plan_type.id} '{plan_type.name}'")
    return await get_plan_type(db, org_id, plan_type.id)


async def update_plan_type(
    db: AsyncSession,
    org_id: str,
    plan_type_id: int,
    changes: Dict[str, Any],
    commit: bool = True,
) -> PlanTypeData:
    plan_type = await get_plan_type_model(db, org_id, plan_type_id)

    if "name" in changes:
        name = changes["name"]
        if not name or not name.strip():
            raise ValidationError("Plan name is required")
        plan_type.name = name.strip()
    if "description" in changes:
        plan_type.description = changes["description"]
    if "category" in changes:
        _check_category(changes["category"])
        plan_type.category = changes["category"]
    if "is_active" in changes:
        plan_type.is_active = bool(changes["is_active"])

    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(plan_type)
    return await get_plan_type(db, org_id, plan_type_id)


async def deactivate_plan_type(
    db: AsyncSession, org_id: str, plan_type_id: int, commit: bool = True
) -> PlanTypeData:
    return await update_plan_type(
        db, org_id, plan_type_id, {"is_active": False}, commit=commit
    )


async def delete_plan_type(
    db: AsyncSession, org_id: str, plan_type_id: int, commit: bool = True
) -> None:
    """Hard delete, only for plan types that never got variants."""
    plan_type = await get_plan_type_model(db, org_id, plan_type_id)
    if plan_type.variants:
        raise ConflictError(
            "Plan type has variants; deactivate it instead of deleting"
        )
    await db.delete(plan_type)
    await db.flush()
    if commit:
        await db.commit()
    logger.info(f"Deleted plan type {plan_type_id}")


# ---------------------------------------------------------------------------
# Plan variants
# ---------------------------------------------------------------------------

async def get_plan_variant_model(db: AsyncSession, org_id: str, variant_id: int) -> PlanVariant:
    res = await db.execute(
        select(PlanVariant)
        .join(PlanType, PlanType.id == PlanVariant.plan_type_id)
        .options(selectinload(PlanVariant.plan_type))
        .where(PlanVariant.id == variant_id, PlanType.org_id == org_id)
    )
    variant = res.scalar_one_or_none()
    if variant is None:
        raise NotFoundError(f"Plan variant {variant_id} not found")
    return variant


async def get_plan_variant(db: AsyncSession, org_id: str, variant_id: int) -> PlanVariantData:
    return _variant_to_data(await get_plan_variant_model(db, org_id, variant_id))


async def list_plan_variants(
    db: AsyncSession,
    org_id: str,
    plan_type_id: int,
    include_inactive: bool = True,
) -> List[PlanVariantData]:
    await get_plan_type_model(db, org_id, plan_type_id)
    stmt = (
        select(PlanVariant)
        .where(PlanVariant.plan_type_id == plan_type_id)
        .order_by(PlanVariant.duration_days, PlanVariant.id)
    )
    if not include_inactive:
        stmt = stmt.where(PlanVariant.is_active.is_(True))
    res = await db.execute(stmt)
    return [_variant_to_data(v) for v in res.scalars().all()]


async def create_plan_variant(
    db: AsyncSession,
    org_id: str,
    plan_type_id: int,
    duration_days: int,
    price: object,
    duration_label: Optional[str] = None,
    is_active: bool = True,
    commit: bool = True,
) -> PlanVariantData:
    plan_type = await get_plan_type_model(db, org_id, plan_type_id)
    if not plan_type.is_active:
        raise ValidationError("Cannot add variants to an inactive plan type")

    variant = PlanVariant(
        plan_type_id=plan_type.id,
        duration_days=duration_days,
        duration_label=resolve_duration_label(duration_days, duration_label),
        price=_check_price(price),
        is_active=is_active,
    )
    db.add(variant)
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(variant)
    logger.info(
        f"Created variant {variant.id} ({variant.duration_label}, {variant.price}) "
        f"for plan type {plan_type_id}"
    )
    return _variant_to_data(variant)


async def update_plan_variant(
    db: AsyncSession,
    org_id: str,
    variant_id: int,
    changes: Dict[str, Any],
    commit: bool = True,
) -> PlanVariantData:
    """
    Update a variant. Existing subscriptions keep their own price and dates,
    so edits here only affect future purchases.
    """
    variant = await get_plan_variant_model(db, org_id, variant_id)

    if "duration_days" in changes or "duration_label" in changes:
        duration_days = changes.get("duration_days", variant.duration_days)
        label = changes.get("duration_label")
        if label is None and "duration_days" not in changes:
            label = variant.duration_label
        variant.duration_label = resolve_duration_label(duration_days, label)
        variant.duration_days = duration_days
    if "price" in changes:
        variant.price = _check_price(changes["price"])
    if "is_active" in changes:
        variant.is_active = bool(changes["is_active"])

    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(variant)
    return _variant_to_data(variant)


async def deactivate_plan_variant(
    db: AsyncSession, org_id: str, variant_id: int, commit: bool = True
) -> PlanVariantData:
    return await update_plan_variant(
        db, org_id, variant_id, {"is_active": False}, commit=commit
    )


async def delete_plan_variant(
    db: AsyncSession, org_id: str, variant_id: int, commit: bool = True
) -> None:
    variant = await get_plan_variant_model(db, org_id, variant_id)
    for model in (Membership, Training):
        res = await db.execute(
            select(func.count()).select_from(model).where(model.plan_variant_id == variant_id)
        )
        if res.scalar_one() > 0:
            raise ConflictError(
                "Plan variant is referenced by subscriptions; deactivate it instead of deleting"
            )
    await db.delete(variant)
    await db.flush()
    if commit:
        await db.commit()
    logger.info(f"Deleted plan variant {variant_id}")
