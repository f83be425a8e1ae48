from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, List, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gymdesk.core.conversions import to_money
from gymdesk.models import Membership, Training, PlanVariant
from gymdesk.crud.subscriptionsCrud import expire_overdue_subscriptions
from gymdesk.services import lifecycle
from gymdesk.services.ledger import total_paid
from gymdesk.services.pricing import calculate_due


@dataclass
class DuesBreakdownItem:
    subscription_id: int
    plan_name: str
    variant_name: str
    final_price: Decimal
    total_paid: Decimal
    due_amount: Decimal
    status: str
    end_date: date


@dataclass
class MemberDuesData:
    member_id: int
    member_name: str
    email: Optional[str]
    phone: Optional[str]
    membership_dues_total: Decimal = Decimal("0.00")
    training_dues_total: Decimal = Decimal("0.00")
    total_due: Decimal = Decimal("0.00")
    memberships: List[DuesBreakdownItem] = field(default_factory=list)
    trainings: List[DuesBreakdownItem] = field(default_factory=list)


@dataclass
class DuesSummary:
    total_members_with_dues: int
    grand_total: Decimal


async def dues_report(
    db: AsyncSession,
    org_id: str,
    member_id: Optional[int] = None,
    limit: int = 10,
    offset: int = 0,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Outstanding dues grouped by member, largest debt first.

    Cancelled subscriptions never count as owed. The summary covers every
    member with dues, not just the returned page.
    """
    await expire_overdue_subscriptions(db, today, org_id)

    members: Dict[int, MemberDuesData] = {}
    for kind, model in (("membership", Membership), ("training", Training)):
        stmt = (
            select(model)
            .options(
                selectinload(model.member),
                selectinload(model.payments),
                selectinload(model.plan_variant).selectinload(PlanVariant.plan_type),
            )
            .where(model.org_id == org_id, model.status != lifecycle.CANCELLED)
            .order_by(model.end_date, model.id)
        )
        if member_id is not None:
            stmt = stmt.where(model.member_id == member_id)
        res = await db.execute(stmt)

        for subscription in res.scalars().all():
            paid = total_paid(subscription.payments)
            due = calculate_due(subscription.final_price, paid)
            if due <= 0:
                continue

            member = subscription.member
            entry = members.get(member.id)
            if entry is None:
                entry = MemberDuesData(
                    member_id=member.id,
                    member_name=member.full_name,
                    email=member.email,
                    phone=member.phone,
                )
                members[member.id] = entry

            item = DuesBreakdownItem(
                subscription_id=subscription.id,
                plan_name=subscription.plan_variant.plan_type.name,
                variant_name=subscription.plan_variant.duration_label,
                final_price=to_money(subscription.final_price),
                total_paid=paid,
                due_amount=due,
                status=subscription.status,
                end_date=subscription.end_date,
            )
            if kind == "membership":
                entry.memberships.append(item)
                entry.membership_dues_total += due
            else:
                entry.trainings.append(item)
                entry.training_dues_total += due
            entry.total_due += due

    ranked = sorted(members.values(), key=lambda m: (-m.total_due, m.member_name.lower(), m.member_id))
    summary = DuesSummary(
        total_members_with_dues=len(ranked),
        grand_total=to_money(sum((m.total_due for m in ranked), Decimal("0"))),
    )
    return {
        "items": ranked[offset:offset + limit],
        "total": len(ranked),
        "summary": summary,
    }
