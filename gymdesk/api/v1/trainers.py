"""
Trainer roster API
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.api.deps import CurrentUser, require_admin, require_staff
from gymdesk.api.envelope import dump, dump_list, ok
from gymdesk.crud import trainersCrud
from gymdesk.db.postgresql import get_db
from gymdesk.schemas.users import TrainerCreate, TrainerResponse

router = APIRouter()


@router.get("")
async def list_trainers(
    include_inactive: bool = Query(False, alias="includeInactive"),
    user: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    trainers = await trainersCrud.list_trainers(db, user.org_id, include_inactive=include_inactive)
    return ok(dump_list(TrainerResponse, trainers))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_trainer(
    body: TrainerCreate,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    trainer = await trainersCrud.create_trainer(db, user.org_id, body.name)
    return ok(dump(TrainerResponse, trainer), message="Trainer created")


@router.put("/{trainer_id}/deactivate")
async def deactivate_trainer(
    trainer_id: int,
    user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    trainer = await trainersCrud.deactivate_trainer(db, user.org_id, trainer_id)
    return ok(dump(TrainerResponse, trainer), message="Trainer deactivated")
