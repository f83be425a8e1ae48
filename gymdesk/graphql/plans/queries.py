from typing import List, Optional

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.core.conversions import coerce_int
from gymdesk.core.errors import NotFoundError
from gymdesk.crud.plansCrud import get_plan_type, list_plan_types
from gymdesk.graphql.auth.permissions import IsAuthenticated
from gymdesk.graphql.plans.types import PlanType


@strawberry.type
class PlansQuery:
    @strawberry.field(permission_classes=[IsAuthenticated])
    async def plan_types(
        self,
        info: strawberry.Info,
        category: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[PlanType]:
        """Plan catalog, optionally filtered by category"""
        db: AsyncSession = info.context.db
        plan_types = await list_plan_types(
            db, info.context.org_id, category=category, include_inactive=include_inactive
        )
        return [PlanType.from_data(pt) for pt in plan_types]

    @strawberry.field(permission_classes=[IsAuthenticated])
    async def plan_type(self, info: strawberry.Info, plan_type_id: int) -> Optional[PlanType]:
        db: AsyncSession = info.context.db

        plan_type_id = coerce_int(plan_type_id)
        if plan_type_id is None:
            return None
        try:
            data = await get_plan_type(db, info.context.org_id, plan_type_id)
        except NotFoundError:
            return None
        return PlanType.from_data(data)
