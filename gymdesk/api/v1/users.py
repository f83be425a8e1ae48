"""
User profile API, including the identity provider sync
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.api.deps import CurrentUser, get_current_user, get_org_identity, require_admin, require_staff
from gymdesk.api.envelope import PageParams, dump, dump_list, ok, page_params, pagination
from gymdesk.auth.jwt import Identity
from gymdesk.core.logging_config import log_auth_event
from gymdesk.crud import usersCrud
from gymdesk.db.postgresql import get_db
from gymdesk.schemas.users import UserCreate, UserResponse, UserRole, UserUpdate

router = APIRouter()


@router.post("/sync")
async def sync_user(
    response: Response,
    identity: Identity = Depends(get_org_identity),
    db: AsyncSession = Depends(get_db),
):
    """Create the local profile for the token's subject if it does not exist yet"""
    user, created = await usersCrud.sync_user(
        db,
        org_id=identity.org_id,
        external_id=identity.subject,
        org_role=identity.org_role,
        email=identity.email,
        first_name=identity.first_name,
        last_name=identity.last_name,
    )
    log_auth_event("sync", identity.subject, identity.org_id, success=True)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return ok(
        dump(UserResponse, user),
        message="User profile created" if created else "User profile already exists",
    )


@router.get("/me")
async def get_me(user: CurrentUser = Depends(get_current_user)):
    return ok(dump(UserResponse, user.profile))


@router.get("")
async def list_users(
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    include_inactive: bool = Query(False, alias="includeInactive"),
    page: PageParams = Depends(page_params),
    user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    result = await usersCrud.list_users(
        db,
        user.org_id,
        role=role,
        search=search,
        include_inactive=include_inactive,
        limit=page.limit,
        offset=page.offset,
    )
    return ok(dump_list(UserResponse, result["items"]), page=pagination(page, result["total"]))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    created = await usersCrud.create_user(db, user.org_id, **body.model_dump())
    return ok(dump(UserResponse, created), message="User created")


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    found = await usersCrud.get_user(db, user.org_id, user_id)
    return ok(dump(UserResponse, found))


@router.patch("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    updated = await usersCrud.update_user(
        db, user.org_id, user_id, body.model_dump(exclude_unset=True)
    )
    return ok(dump(UserResponse, updated), message="User updated")


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    deleted = await usersCrud.delete_user(db, user.org_id, user_id)
    return ok(dump(UserResponse, deleted), message="User deleted")
