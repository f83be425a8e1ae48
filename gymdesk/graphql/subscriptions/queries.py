from typing import List, Optional

import strawberry
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.core.errors import NotFoundError
from gymdesk.crud.paymentsCrud import get_dues
from gymdesk.crud.reportsCrud import dues_report
from gymdesk.crud.subscriptionsCrud import get_subscription, list_subscriptions
from gymdesk.graphql.auth.permissions import IsStaff
from gymdesk.graphql.subscriptions.types import (
    Dues,
    DuesReport,
    MemberDues,
    Subscription,
    SubscriptionKind,
)


@strawberry.type
class SubscriptionsQuery:
    @strawberry.field(permission_classes=[IsStaff])
    async def subscriptions(
        self,
        info: strawberry.Info,
        kind: SubscriptionKind = SubscriptionKind.MEMBERSHIP,
        status: Optional[str] = None,
        member_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Subscription]:
        """Memberships or trainings, newest first"""
        db: AsyncSession = info.context.db
        result = await list_subscriptions(
            db,
            kind.value,
            info.context.org_id,
            status=status,
            member_id=member_id,
            limit=limit,
            offset=offset,
        )
        return [Subscription.from_data(s) for s in result["items"]]

    @strawberry.field(permission_classes=[IsStaff])
    async def subscription(
        self, info: strawberry.Info, kind: SubscriptionKind, subscription_id: int
    ) -> Optional[Subscription]:
        db: AsyncSession = info.context.db
        try:
            data = await get_subscription(db, kind.value, info.context.org_id, subscription_id)
        except NotFoundError:
            return None
        return Subscription.from_data(data)

    @strawberry.field(permission_classes=[IsStaff])
    async def dues(self, info: strawberry.Info, kind: SubscriptionKind, subscription_id: int) -> Optional[Dues]:
        db: AsyncSession = info.context.db
        try:
            data = await get_dues(db, kind.value, info.context.org_id, subscription_id)
        except NotFoundError:
            return None
        return Dues.from_data(data)

    @strawberry.field(permission_classes=[IsStaff])
    async def dues_report(
        self,
        info: strawberry.Info,
        member_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> DuesReport:
        """Members with outstanding dues, largest first"""
        db: AsyncSession = info.context.db
        result = await dues_report(
            db, info.context.org_id, member_id=member_id, limit=limit, offset=offset
        )
        summary = result["summary"]
        return DuesReport(
            members=[MemberDues.from_data(m) for m in result["items"]],
            total_members_with_dues=summary.total_members_with_dues,
            grand_total=float(summary.grand_total),
        )
