"""
Plan catalog API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.api.deps import CurrentUser, get_current_user, require_admin
from gymdesk.api.envelope import dump, dump_list, ok
from gymdesk.crud import plansCrud
from gymdesk.db.postgresql import get_db
from gymdesk.schemas.plans import (
    PlanCategory,
    PlanTypeCreate,
    PlanTypeResponse,
    PlanTypeUpdate,
    PlanVariantCreate,
    PlanVariantResponse,
    PlanVariantUpdate,
)

router = APIRouter()


@router.get("/types")
async def list_plan_types(
    category: Optional[PlanCategory] = None,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active plan types with their active variants, as offered for purchase"""
    plan_types = await plansCrud.list_plan_types(db, user.org_id, category=category)
    return ok(dump_list(PlanTypeResponse, plan_types))


@router.get("/types/all")
async def list_all_plan_types(
    category: Optional[PlanCategory] = None,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Every plan type and variant, including inactive ones"""
    plan_types = await plansCrud.list_plan_types(
        db, user.org_id, category=category, include_inactive=True
    )
    return ok(dump_list(PlanTypeResponse, plan_types))


@router.get("/types/{plan_type_id}")
async def get_plan_type(
    plan_type_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    plan_type = await plansCrud.get_plan_type(db, user.org_id, plan_type_id)
    return ok(dump(PlanTypeResponse, plan_type))


@router.post("/types", status_code=status.HTTP_201_CREATED)
async def create_plan_type(
    body: PlanTypeCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    plan_type = await plansCrud.create_plan_type(
        db,
        user.org_id,
        name=body.name,
        category=body.category,
        description=body.description,
        is_active=body.is_active,
    )
    return ok(dump(PlanTypeResponse, plan_type), message="Plan type created")


@router.patch("/types/{plan_type_id}")
async def update_plan_type(
    plan_type_id: int,
    body: PlanTypeUpdate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    plan_type = await plansCrud.update_plan_type(
        db, user.org_id, plan_type_id, body.model_dump(exclude_unset=True)
    )
    return ok(dump(PlanTypeResponse, plan_type), message="Plan type updated")


@router.delete("/types/{plan_type_id}")
async def delete_plan_type(
    plan_type_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await plansCrud.delete_plan_type(db, user.org_id, plan_type_id)
    return ok(message="Plan type deleted")


@router.put("/types/{plan_type_id}/deactivate")
async def deactivate_plan_type(
    plan_type_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    plan_type = await plansCrud.deactivate_plan_type(db, user.org_id, plan_type_id)
    return ok(dump(PlanTypeResponse, plan_type), message="Plan type deactivated")


@router.get("/types/{plan_type_id}/variants")
async def list_plan_variants(
    plan_type_id: int,
    include_inactive: bool = Query(True, alias="includeInactive"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    variants = await plansCrud.list_plan_variants(
        db, user.org_id, plan_type_id, include_inactive=include_inactive
    )
    return ok(dump_list(PlanVariantResponse, variants))


@router.post("/types/{plan_type_id}/variants", status_code=status.HTTP_201_CREATED)
async def create_plan_variant(
    plan_type_id: int,
    body: PlanVariantCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    variant = await plansCrud.create_plan_variant(
        db,
        user.org_id,
        plan_type_id,
        duration_days=body.duration_days,
        price=body.price,
        duration_label=body.duration_label,
        is_active=body.is_active,
    )
    return ok(dump(PlanVariantResponse, variant), message="Plan variant created")


@router.get("/variants/{variant_id}")
async def get_plan_variant(
    variant_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    variant = await plansCrud.get_plan_variant(db, user.org_id, variant_id)
    return ok(dump(PlanVariantResponse, variant))


@router.patch("/variants/{variant_id}")
async def update_plan_variant(
    variant_id: int,
    body: PlanVariantUpdate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    variant = await plansCrud.update_plan_variant(
        db, user.org_id, variant_id, body.model_dump(exclude_unset=True)
    )
    return ok(dump(PlanVariantResponse, variant), message="Plan variant updated")


@router.delete("/variants/{variant_id}")
async def delete_plan_variant(
    variant_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await plansCrud.delete_plan_variant(db, user.org_id, variant_id)
    return ok(message="Plan variant deleted")


@router.put("/variants/{variant_id}/deactivate")
async def deactivate_plan_variant(
    variant_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    variant = await plansCrud.deactivate_plan_variant(db, user.org_id, variant_id)
    return ok(dump(PlanVariantResponse, variant), message="Plan variant deactivated")
