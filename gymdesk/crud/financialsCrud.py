from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Any, Tuple
import math

from dateutil.relativedelta import relativedelta
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.core.conversions import to_money, parse_month
from gymdesk.core.errors import NotFoundError, ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.models import Expense, Investment, Payment
from gymdesk.models.financeModel import EXPENSE_CATEGORIES

logger = get_logger("crud.financials")


@dataclass
class ExpenseData:
    id: int
    amount: Decimal
    category: str
    date: date
    description: Optional[str]
    created_at: datetime


@dataclass
class InvestmentData:
    id: int
    name: str
    amount: Decimal
    date: date
    notes: Optional[str]
    created_at: datetime


@dataclass
class MonthlySummary:
    month: str
    revenue: Decimal
    expenses: Decimal
    net_profit: Decimal


@dataclass
class TrendPoint:
    year: int
    month: int
    revenue: Decimal
    expenses: Decimal
    net_profit: Decimal


@dataclass
class RoiData:
    total_invested: Decimal
    total_revenue: Decimal
    total_expenses: Decimal
    total_net_profit: Decimal
    roi_percent: Optional[float]
    payback_months: Optional[int]


def _expense_to_data(expense: Expense) -> ExpenseData:
    return ExpenseData(
        id=expense.id,
        amount=to_money(expense.amount),
        category=expense.category,
        date=expense.date,
        description=expense.description,
        created_at=expense.created_at,
    )


def _investment_to_data(investment: Investment) -> InvestmentData:
    return InvestmentData(
        id=investment.id,
        name=investment.name,
        amount=to_money(investment.amount),
        date=investment.date,
        notes=investment.notes,
        created_at=investment.created_at,
    )


def _positive_amount(amount: object) -> Decimal:
    if amount is None:
        raise ValidationError("Amount is required")
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


def _month_bounds(year: int, month: int) -> Tuple[date, date]:
    start = date(year, month, 1)
    return start, start + relativedelta(months=1)


def _month_of(month: Optional[str], today: Optional[date] = None) -> Tuple[int, int]:
    try:
        return parse_month(month, today)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

async def _get_expense_model(db: AsyncSession, org_id: str, expense_id: int) -> Expense:
    res = await db.execute(
        select(Expense).where(Expense.id == expense_id, Expense.org_id == org_id)
    )
    expense = res.scalar_one_or_none()
    if expense is None:
        raise NotFoundError(f"Expense {expense_id} not found")
    return expense


async def list_expenses(
    db: AsyncSession, org_id: str, month: Optional[str] = None
) -> List[ExpenseData]:
    stmt = select(Expense).where(Expense.org_id == org_id)
    if month:
        start, end = _month_bounds(*_month_of(month))
        stmt = stmt.where(Expense.date >= start, Expense.date < end)
    res = await db.execute(stmt.order_by(Expense.date.desc(), Expense.id.desc()))
    return [_expense_to_data(e) for e in res.scalars().all()]


async def create_expense(
    db: AsyncSession,
    org_id: str,
    amount: object,
    category: str = "other",
    expense_date: Optional[date] = None,
    description: Optional[str] = None,
    commit: bool = True,
) -> ExpenseData:
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Invalid expense category '{category}'")
    expense = Expense(
        org_id=org_id,
        amount=_positive_amount(amount),
        category=category,
        date=expense_date or date.today(),
        description=description,
    )
    db.add(expense)
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(expense)
    return _expense_to_data(expense)


async def update_expense(
    db: AsyncSession,
    org_id: str,
    expense_id: int,
    changes: Dict[str, Any],
    commit: bool = True,
) -> ExpenseData:
    expense = await _get_expense_model(db, org_id, expense_id)
    if "amount" in changes:
        expense.amount = _positive_amount(changes["amount"])
    if "category" in changes:
        if changes["category"] not in EXPENSE_CATEGORIES:
            raise ValidationError(f"Invalid expense category '{changes['category']}'")
        expense.category = changes["category"]
    if changes.get("date") is not None:
        expense.date = changes["date"]
    if "description" in changes:
        expense.description = changes["description"]
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(expense)
    return _expense_to_data(expense)


async def delete_expense(
    db: AsyncSession, org_id: str, expense_id: int, commit: bool = True
) -> None:
    expense = await _get_expense_model(db, org_id, expense_id)
    await db.delete(expense)
    await db.flush()
    if commit:
        await db.commit()


# ---------------------------------------------------------------------------
# Investments
# ---------------------------------------------------------------------------

async def _get_investment_model(db: AsyncSession, org_id: str, investment_id: int) -> Investment:
    res = await db.execute(
        select(Investment).where(Investment.id == investment_id, Investment.org_id == org_id)
    )
    investment = res.scalar_one_or_none()
    if investment is None:
        raise NotFoundError(f"Investment {investment_id} not found")
    return investment


async def list_investments(db: AsyncSession, org_id: str) -> List[InvestmentData]:
    res = await db.execute(
        select(Investment)
        .where(Investment.org_id == org_id)
        .order_by(Investment.date.desc(), Investment.id.desc())
    )
    return [_investment_to_data(i) for i in res.scalars().all()]


async def create_investment(
    db: AsyncSession,
    org_id: str,
    name: str,
    amount: object,
    investment_date: Optional[date] = None,
    notes: Optional[str] = None,
    commit: bool = True,
) -> InvestmentData:
    if not name or not name.strip():
        raise ValidationError("Investment name is required")
    investment = Investment(
        org_id=org_id,
        name=name.strip(),
        amount=_positive_amount(amount),
        date=investment_date or date.today(),
        notes=notes,
    )
    db.add(investment)
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(investment)
    return _investment_to_data(investment)


async def update_investment(
    db: AsyncSession,
    org_id: str,
    investment_id: int,
    changes: Dict[str, Any],
    commit: bool = True,
) -> InvestmentData:
    investment = await _get_investment_model(db, org_id, investment_id)
    if "name" in changes:
        if not changes["name"] or not changes["name"].strip():
            raise ValidationError("Investment name is required")
        investment.name = changes["name"].strip()
    if "amount" in changes:
        investment.amount = _positive_amount(changes["amount"])
    if changes.get("date") is not None:
        investment.date = changes["date"]
    if "notes" in changes:
        investment.notes = changes["notes"]
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(investment)
    return _investment_to_data(investment)


async def delete_investment(
    db: AsyncSession, org_id: str, investment_id: int, commit: bool = True
) -> None:
    investment = await _get_investment_model(db, org_id, investment_id)
    await db.delete(investment)
    await db.flush()
    if commit:
        await db.commit()


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

async def _revenue_between(db: AsyncSession, org_id: str, start: date, end: date) -> Decimal:
    res = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.org_id == org_id,
            Payment.status == "paid",
            Payment.paid_at >= datetime(start.year, start.month, start.day),
            Payment.paid_at < datetime(end.year, end.month, end.day),
        )
    )
    return to_money(res.scalar_one())


async def _expenses_between(db: AsyncSession, org_id: str, start: date, end: date) -> Decimal:
    res = await db.execute(
        select(func.coalesce(func.sum(Expense.amount), 0)).where(
            Expense.org_id == org_id,
            Expense.date >= start,
            Expense.date < end,
        )
    )
    return to_money(res.scalar_one())


async def monthly_summary(
    db: AsyncSession,
    org_id: str,
    month: Optional[str] = None,
    today: Optional[date] = None,
) -> MonthlySummary:
    """Revenue from paid payments and expenses booked in one calendar month."""
    year, month_number = _month_of(month, today)
    start, end = _month_bounds(year, month_number)
    revenue = await _revenue_between(db, org_id, start, end)
    expenses = await _expenses_between(db, org_id, start, end)
    return MonthlySummary(
        month=f"{year:04d}-{month_number:02d}",
        revenue=revenue,
        expenses=expenses,
        net_profit=revenue - expenses,
    )


async def trends(
    db: AsyncSession,
    org_id: str,
    months: int = 12,
    today: Optional[date] = None,
) -> List[TrendPoint]:
    """Trailing monthly series, oldest first, ending with the current month."""
    if months < 1 or months > 60:
        raise ValidationError("Months must be between 1 and 60")
    today = today or date.today()
    current = today.replace(day=1)

    points: List[TrendPoint] = []
    for back in range(months - 1, -1, -1):
        start = current - relativedelta(months=back)
        end = start + relativedelta(months=1)
        revenue = await _revenue_between(db, org_id, start, end)
        expenses = await _expenses_between(db, org_id, start, end)
        points.append(
            TrendPoint(
                year=start.year,
                month=start.month,
                revenue=revenue,
                expenses=expenses,
                net_profit=revenue - expenses,
            )
        )
    return points


async def roi(db: AsyncSession, org_id: str) -> RoiData:
    """
    Return on investment over the gym's whole history.

    Payback months extrapolate the remaining investment from the average net
    profit of the months that saw any revenue or expense.
    """
    invested = to_money(
        (
            await db.execute(
                select(func.coalesce(func.sum(Investment.amount), 0)).where(
                    Investment.org_id == org_id
                )
            )
        ).scalar_one()
    )

    monthly_net: Dict[Tuple[int, int], Decimal] = defaultdict(lambda: Decimal("0"))
    total_revenue = Decimal("0")
    total_expenses = Decimal("0")

    payments = await db.execute(
        select(Payment.paid_at, Payment.created_at, Payment.amount).where(
            Payment.org_id == org_id, Payment.status == "paid"
        )
    )
    for paid_at, created_at, amount in payments.all():
        stamp = paid_at or created_at
        amount = to_money(amount)
        monthly_net[(stamp.year, stamp.month)] += amount
        total_revenue += amount

    expenses = await db.execute(
        select(Expense.date, Expense.amount).where(Expense.org_id == org_id)
    )
    for expense_date, amount in expenses.all():
        amount = to_money(amount)
        monthly_net[(expense_date.year, expense_date.month)] -= amount
        total_expenses += amount

    net_profit = to_money(total_revenue - total_expenses)

    roi_percent = None
    if invested > 0:
        roi_percent = float((net_profit / invested * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

    payback_months = None
    if net_profit >= invested:
        payback_months = 0
    elif monthly_net:
        average = sum(monthly_net.values(), Decimal("0")) / len(monthly_net)
        if average > 0:
            payback_months = math.ceil((invested - net_profit) / average)

    return RoiData(
        total_invested=invested,
        total_revenue=to_money(total_revenue),
        total_expenses=to_money(total_expenses),
        total_net_profit=net_profit,
        roi_percent=roi_percent,
        payback_months=payback_months,
    )
