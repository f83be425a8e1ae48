from datetime import datetime
from typing import List, Optional

import strawberry

from gymdesk.crud.plansCrud import PlanTypeData, PlanVariantData


@strawberry.type
class PlanVariant:
    id: int
    plan_type_id: int
    duration_days: int
    duration_label: str
    price: float
    is_active: bool
    created_at: datetime

    @classmethod
    def from_data(cls, data: PlanVariantData) -> "PlanVariant":
        return cls(
            id=data.id,
            plan_type_id=data.plan_type_id,
            duration_days=data.duration_days,
            duration_label=data.duration_label,
            price=float(data.price),
            is_active=data.is_active,
            created_at=data.created_at,
        )


@strawberry.type
class PlanType:
    id: int
    name: str
    description: Optional[str]
    category: str
    is_active: bool
    created_at: datetime
    variants: List[PlanVariant]

    @classmethod
    def from_data(cls, data: PlanTypeData) -> "PlanType":
        return cls(
            id=data.id,
            name=data.name,
            description=data.description,
            category=data.category,
            is_active=data.is_active,
            created_at=data.created_at,
            variants=[PlanVariant.from_data(v) for v in data.variants],
        )


@strawberry.input
class CreatePlanTypeInput:
    name: str
    category: str = "membership"
    description: Optional[str] = None
    is_active: bool = True


@strawberry.input
class CreatePlanVariantInput:
    plan_type_id: int
    duration_days: int
    price: float
    duration_label: Optional[str] = None
    is_active: bool = True


@strawberry.type
class PlanTypeResponse:
    plan_type: Optional[PlanType]
    success: bool
    message: str


@strawberry.type
class PlanVariantResponse:
    variant: Optional[PlanVariant]
    success: bool
    message: str
