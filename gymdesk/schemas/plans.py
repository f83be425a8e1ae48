"""
Plan catalog schemas
"""
from datetime import datetime
from typing import Optional, List, Literal

from pydantic import Field

from gymdesk.schemas.common import CamelModel, Money

PlanCategory = Literal["membership", "training"]


class PlanVariantResponse(CamelModel):
    id: int
    plan_type_id: int
    duration_days: int
    duration_label: str
    price: Money
    is_active: bool
    created_at: datetime


class PlanTypeResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    category: PlanCategory
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    variants: List[PlanVariantResponse] = []


class PlanTypeCreate(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    category: PlanCategory = "membership"
    is_active: bool = True


class PlanTypeUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[PlanCategory] = None
    is_active: Optional[bool] = None


class PlanVariantCreate(CamelModel):
    duration_days: int = Field(gt=0)
    duration_label: Optional[str] = Field(default=None, max_length=50)
    price: Money = Field(ge=0)
    is_active: bool = True


class PlanVariantUpdate(CamelModel):
    duration_days: Optional[int] = Field(default=None, gt=0)
    duration_label: Optional[str] = Field(default=None, max_length=50)
    price: Optional[Money] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
