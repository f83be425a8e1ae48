"""
Financial reports, expenses and investments API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.api.deps import CurrentUser, require_admin
from gymdesk.api.envelope import dump, dump_list, ok
from gymdesk.core.config import TRENDS_MONTHS_DEFAULT
from gymdesk.crud import financialsCrud
from gymdesk.db.postgresql import get_db
from gymdesk.schemas.reports import (
    ExpenseCreate,
    ExpenseResponse,
    ExpenseUpdate,
    InvestmentCreate,
    InvestmentResponse,
    InvestmentUpdate,
    MonthlySummaryResponse,
    RoiResponse,
    TrendPointResponse,
)

router = APIRouter()

MONTH_PATTERN = r"^\d{4}-\d{2}$"


@router.get("/summary")
async def get_summary(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    summary = await financialsCrud.monthly_summary(db, user.org_id, month)
    return ok(dump(MonthlySummaryResponse, summary))


@router.get("/roi")
async def get_roi(
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return ok(dump(RoiResponse, await financialsCrud.roi(db, user.org_id)))


@router.get("/trends")
async def get_trends(
    months: int = Query(TRENDS_MONTHS_DEFAULT, ge=1, le=60),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    points = await financialsCrud.trends(db, user.org_id, months)
    return ok(dump_list(TrendPointResponse, points))


@router.get("/expenses")
async def list_expenses(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    expenses = await financialsCrud.list_expenses(db, user.org_id, month)
    return ok(dump_list(ExpenseResponse, expenses))


@router.post("/expenses", status_code=status.HTTP_201_CREATED)
async def create_expense(
    body: ExpenseCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    expense = await financialsCrud.create_expense(
        db,
        user.org_id,
        amount=body.amount,
        category=body.category,
        expense_date=body.date,
        description=body.description,
    )
    return ok(dump(ExpenseResponse, expense), message="Expense recorded")


@router.patch("/expenses/{expense_id}")
async def update_expense(
    expense_id: int,
    body: ExpenseUpdate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    expense = await financialsCrud.update_expense(
        db, user.org_id, expense_id, body.model_dump(exclude_unset=True)
    )
    return ok(dump(ExpenseResponse, expense), message="Expense updated")


@router.delete("/expenses/{expense_id}")
async def delete_expense(
    expense_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await financialsCrud.delete_expense(db, user.org_id, expense_id)
    return ok(message="Expense deleted")


@router.get("/investments")
async def list_investments(
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    investments = await financialsCrud.list_investments(db, user.org_id)
    return ok(dump_list(InvestmentResponse, investments))


@router.post("/investments", status_code=status.HTTP_201_CREATED)
async def create_investment(
    body: InvestmentCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    investment = await financialsCrud.create_investment(
        db,
        user.org_id,
        name=body.name,
        amount=body.amount,
        investment_date=body.date,
        notes=body.notes,
    )
    return ok(dump(InvestmentResponse, investment), message="Investment recorded")


@router.patch("/investments/{investment_id}")
async def update_investment(
    investment_id: int,
    body: InvestmentUpdate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    investment = await financialsCrud.update_investment(
        db, user.org_id, investment_id, body.model_dump(exclude_unset=True)
    )
    return ok(dump(InvestmentResponse, investment), message="Investment updated")


@router.delete("/investments/{investment_id}")
async def delete_investment(
    investment_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await financialsCrud.delete_investment(db, user.org_id, investment_id)
    return ok(message="Investment deleted")
