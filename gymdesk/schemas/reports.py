"""
Dues report and financial schemas
"""
import datetime as dt
from typing import Optional, List, Literal

from pydantic import Field

from gymdesk.schemas.common import CamelModel, Money

ExpenseCategory = Literal["rent", "utilities", "staff", "equipment", "marketing", "maintenance", "other"]


class DuesBreakdownResponse(CamelModel):
    subscription_id: int
    plan_name: str
    variant_name: str
    final_price: Money
    total_paid: Money
    due_amount: Money
    status: str
    end_date: dt.date


class MemberDuesResponse(CamelModel):
    member_id: int
    member_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    membership_dues_total: Money
    training_dues_total: Money
    total_due: Money
    memberships: List[DuesBreakdownResponse] = []
    trainings: List[DuesBreakdownResponse] = []


class DuesSummaryResponse(CamelModel):
    total_members_with_dues: int
    grand_total: Money


class DuesReportResponse(CamelModel):
    members: List[MemberDuesResponse]
    summary: DuesSummaryResponse


class MonthlySummaryResponse(CamelModel):
    month: str
    revenue: Money
    expenses: Money
    net_profit: Money


class TrendPointResponse(CamelModel):
    year: int
    month: int
    revenue: Money
    expenses: Money
    net_profit: Money


class RoiResponse(CamelModel):
    total_invested: Money
    total_revenue: Money
    total_expenses: Money
    total_net_profit: Money
    roi_percent: Optional[float] = None
    payback_months: Optional[int] = None


class ExpenseResponse(CamelModel):
    id: int
    amount: Money
    category: ExpenseCategory
    date: dt.date
    description: Optional[str] = None
    created_at: dt.datetime


class ExpenseCreate(CamelModel):
    amount: Money = Field(gt=0)
    category: ExpenseCategory = "other"
    date: Optional[dt.date] = None
    description: Optional[str] = None


class ExpenseUpdate(CamelModel):
    amount: Optional[Money] = Field(default=None, gt=0)
    category: Optional[ExpenseCategory] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None


class InvestmentResponse(CamelModel):
    id: int
    name: str
    amount: Money
    date: dt.date
    notes: Optional[str] = None
    created_at: dt.datetime


class InvestmentCreate(CamelModel):
    name: str = Field(min_length=1, max_length=150)
    amount: Money = Field(gt=0)
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class InvestmentUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    amount: Optional[Money] = Field(default=None, gt=0)
    date: Optional[dt.date] = None
    notes: Optional[str] = None
