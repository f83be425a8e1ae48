import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.core.errors import GymDeskError
from gymdesk.crud.plansCrud import (
    create_plan_type,
    create_plan_variant,
    deactivate_plan_type,
    deactivate_plan_variant,
)
from gymdesk.graphql.auth.permissions import IsAdmin
from gymdesk.graphql.plans.types import (
    CreatePlanTypeInput,
    CreatePlanVariantInput,
    PlanType,
    PlanTypeResponse,
    PlanVariant,
    PlanVariantResponse,
)


@strawberry.type
class PlansMutation:
    @strawberry.mutation(permission_classes=[IsAdmin])
    async def create_plan_type(self, info: strawberry.Info, input: CreatePlanTypeInput) -> PlanTypeResponse:
        """Create a plan type"""
        db: AsyncSession = info.context.db
        try:
            data = await create_plan_type(
                db,
                info.context.org_id,
                name=input.name,
                category=input.category,
                description=input.description,
                is_active=input.is_active,
            )
            return PlanTypeResponse(plan_type=PlanType.from_data(data), success=True, message="Plan type created")
        except GymDeskError as e:
            await db.rollback()
            return PlanTypeResponse(plan_type=None, success=False, message=e.message)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def deactivate_plan_type(self, info: strawberry.Info, plan_type_id: int) -> PlanTypeResponse:
        db: AsyncSession = info.context.db
        try:
            data = await deactivate_plan_type(db, info.context.org_id, plan_type_id)
            return PlanTypeResponse(plan_type=PlanType.from_data(data), success=True, message="Plan type deactivated")
        except GymDeskError as e:
            await db.rollback()
            return PlanTypeResponse(plan_type=None, success=False, message=e.message)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def create_plan_variant(self, info: strawberry.Info, input: CreatePlanVariantInput) -> PlanVariantResponse:
        """Add a duration/price tier to a plan type"""
        db: AsyncSession = info.context.db
        try:
            data = await create_plan_variant(
                db,
                info.context.org_id,
                input.plan_type_id,
                duration_days=input.duration_days,
                price=input.price,
                duration_label=input.duration_label,
                is_active=input.is_active,
            )
            return PlanVariantResponse(variant=PlanVariant.from_data(data), success=True, message="Plan variant created")
        except GymDeskError as e:
            await db.rollback()
            return PlanVariantResponse(variant=None, success=False, message=e.message)

    @strawberry.mutation(permission_classes=[IsAdmin])
    async def deactivate_plan_variant(self, info: strawberry.Info, variant_id: int) -> PlanVariantResponse:
        db: AsyncSession = info.context.db
        try:
            data = await deactivate_plan_variant(db, info.context.org_id, variant_id)
            return PlanVariantResponse(variant=PlanVariant.from_data(data), success=True, message="Plan variant deactivated")
        except GymDeskError as e:
            await db.rollback()
            return PlanVariantResponse(variant=None, success=False, message=e.message)
