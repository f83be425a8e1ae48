from dataclasses import dataclass
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.core.errors import NotFoundError, ValidationError
from gymdesk.models import Trainer


@dataclass
class TrainerData:
    id: int
    name: str
    is_active: bool
    created_at: datetime


def _trainer_to_data(trainer: Trainer) -> TrainerData:
    return TrainerData(
        id=trainer.id,
        name=trainer.name,
        is_active=trainer.is_active,
        created_at=trainer.created_at,
    )


async def get_trainer_model(db: AsyncSession, org_id: str, trainer_id: int) -> Trainer:
    res = await db.execute(
        select(Trainer).where(Trainer.id == trainer_id, Trainer.org_id == org_id)
    )
    trainer = res.scalar_one_or_none()
    if trainer is None:
        raise NotFoundError(f"Trainer {trainer_id} not found")
    return trainer


async def list_trainers(
    db: AsyncSession, org_id: str, include_inactive: bool = False
) -> List[TrainerData]:
    stmt = select(Trainer).where(Trainer.org_id == org_id)
    if not include_inactive:
        stmt = stmt.where(Trainer.is_active.is_(True))
    res = await db.execute(stmt.order_by(Trainer.name))
    return [_trainer_to_data(t) for t in res.scalars().all()]


async def create_trainer(
    db: AsyncSession, org_id: str, name: str, commit: bool = True
) -> TrainerData:
    if not name or not name.strip():
        raise ValidationError("Trainer name is required")
    trainer = Trainer(org_id=org_id, name=name.strip(), is_active=True)
    db.add(trainer)
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(trainer)
    return _trainer_to_data(trainer)


async def deactivate_trainer(
    db: AsyncSession, org_id: str, trainer_id: int, commit: bool = True
) -> TrainerData:
    trainer = await get_trainer_model(db, org_id, trainer_id)
    trainer.is_active = False
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(trainer)
    return _trainer_to_data(trainer)
