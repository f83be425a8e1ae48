"""
Dues report API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.api.deps import CurrentUser, require_staff
from gymdesk.api.envelope import PageParams, dump, dump_list, ok, page_params, pagination
from gymdesk.crud import reportsCrud
from gymdesk.db.postgresql import get_db
from gymdesk.schemas.reports import DuesSummaryResponse, MemberDuesResponse

router = APIRouter()


@router.get("/dues")
async def dues_report(
    member_id: Optional[int] = Query(None, alias="memberId"),
    page: PageParams = Depends(page_params),
    user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Members with outstanding dues, largest first, plus org-wide totals"""
    result = await reportsCrud.dues_report(
        db, user.org_id, member_id=member_id, limit=page.limit, offset=page.offset
    )
    return ok(
        {
            "members": dump_list(MemberDuesResponse, result["items"]),
            "summary": dump(DuesSummaryResponse, result["summary"]),
        },
        page=pagination(page, result["total"]),
    )
