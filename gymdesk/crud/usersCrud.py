from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Dict, Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from gymdesk.core.config import IDP_ADMIN_ROLE
from gymdesk.core.errors import ConflictError, NotFoundError, ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.crud.subscriptionsCrud import expire_overdue_subscriptions
from gymdesk.models import User, Membership, Training

logger = get_logger("crud.users")

USER_ROLES = ("member", "trainer", "admin")
UPDATABLE_FIELDS = (
    "first_name", "last_name", "email", "phone", "date_of_birth",
    "gender", "join_date", "notes", "is_active", "role",
)


@dataclass
class UserData:
    id: int
    external_id: Optional[str]
    role: str
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str]
    phone: Optional[str]
    date_of_birth: Optional[date]
    gender: Optional[str]
    join_date: date
    notes: Optional[str]
    is_active: bool
    created_at: datetime


def _user_to_data(user: User) -> UserData:
    """Map User model to UserData DTO."""
    return UserData(
        id=user.id,
        external_id=user.external_id,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        date_of_birth=user.date_of_birth,
        gender=user.gender,
        join_date=user.join_date,
        notes=user.notes,
        is_active=user.is_active,
        created_at=user.created_at,
    )


def _check_role(role: str) -> None:
    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role '{role}'")


async def get_user_model(db: AsyncSession, org_id: str, user_id: int) -> User:
    res = await db.execute(
        select(User).where(User.id == user_id, User.org_id == org_id)
    )
    user = res.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def get_user(db: AsyncSession, org_id: str, user_id: int) -> UserData:
    return _user_to_data(await get_user_model(db, org_id, user_id))


async def get_user_by_external_id(
    db: AsyncSession, org_id: str, external_id: str
) -> Optional[UserData]:
    res = await db.execute(
        select(User).where(User.org_id == org_id, User.external_id == external_id)
    )
    user = res.scalar_one_or_none()
    return _user_to_data(user) if user else None


async def list_users(
    db: AsyncSession,
    org_id: str,
    role: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
    limit: int = 10,
    offset: int = 0,
) -> Dict[str, Any]:
    """List organization users ordered by name."""
    filters = [User.org_id == org_id]
    if role:
        _check_role(role)
        filters.append(User.role == role)
    if not include_inactive:
        filters.append(User.is_active.is_(True))
    if search:
        term = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(User.first_name).like(term),
                func.lower(User.last_name).like(term),
                func.lower(User.email).like(term),
                User.phone.like(term),
            )
        )

    total = (
        await db.execute(select(func.count()).select_from(User).where(*filters))
    ).scalar_one()

    res = await db.execute(
        select(User)
        .where(*filters)
        .order_by(func.lower(User.first_name), func.lower(User.last_name), User.id)
        .offset(offset)
        .limit(limit)
    )
    return {"items": [_user_to_data(u) for u in res.scalars().all()], "total": total}


async def create_user(
    db: AsyncSession,
    org_id: str,
    first_name: str,
    last_name: str = "",
    role: str = "member",
    external_id: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    date_of_birth: Optional[date] = None,
    gender: Optional[str] = None,
    join_date: Optional[date] = None,
    notes: Optional[str] = None,
    commit: bool = True,
) -> UserData:
    if not first_name or not first_name.strip():
        raise ValidationError("First name is required")
    _check_role(role)

    user = User(
        org_id=org_id,
        external_id=external_id,
        role=role,
        first_name=first_name.strip(),
        last_name=(last_name or "").strip(),
        email=email,
        phone=phone,
        date_of_birth=date_of_birth,
        gender=gender,
        join_date=join_date or date.today(),
        notes=notes,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(user)
    return _user_to_data(user)


async def update_user(
    db: AsyncSession,
    org_id: str,
    user_id: int,
    changes: Dict[str, Any],
    commit: bool = True,
) -> UserData:
    user = await get_user_model(db, org_id, user_id)
    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if field == "role":
            _check_role(value)
        if field == "first_name" and (not value or not value.strip()):
            raise ValidationError("First name is required")
        setattr(user, field, value)

    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(user)
    return _user_to_data(user)


async def has_open_subscriptions(db: AsyncSession, org_id: str, member_id: int) -> bool:
    """True while the member holds an active or frozen membership or training."""
    for model in (Membership, Training):
        res = await db.execute(
            select(func.count())
            .select_from(model)
            .where(
                model.org_id == org_id,
                model.member_id == member_id,
                model.status.in_(("active", "frozen")),
            )
        )
        if res.scalar_one() > 0:
            return True
    return False


async def delete_user(
    db: AsyncSession,
    org_id: str,
    user_id: int,
    commit: bool = True,
    today: Optional[date] = None,
) -> UserData:
    """Soft delete. Refused while the member still holds an open subscription."""
    user = await get_user_model(db, org_id, user_id)
    # overdue rows must not count as open
    await expire_overdue_subscriptions(db, today, org_id, commit=False)
    if await has_open_subscriptions(db, org_id, user_id):
        raise ConflictError(
            "Member has active or frozen subscriptions; cancel them before deleting"
        )
    user.is_active = False
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(user)
    logger.info(f"User {user_id} deactivated in org {org_id}")
    return _user_to_data(user)


async def sync_user(
    db: AsyncSession,
    org_id: str,
    external_id: str,
    org_role: Optional[str] = None,
    email: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> tuple[UserData, bool]:
    """
    Create the local profile for an identity provider subject.

    Returns the profile and whether it was created. Existing profiles are
    returned unchanged apart from filling in a missing email.
    """
    res = await db.execute(
        select(User).where(User.org_id == org_id, User.external_id == external_id)
    )
    user = res.scalar_one_or_none()
    if user is not None:
        if email and not user.email:
            user.email = email
            await db.commit()
            await db.refresh(user)
        return _user_to_data(user), False

    role = "admin" if org_role == IDP_ADMIN_ROLE else "member"
    if not first_name:
        first_name = email.split("@")[0] if email else "User"
    created = await create_user(
        db,
        org_id=org_id,
        first_name=first_name,
        last_name=last_name or "",
        role=role,
        external_id=external_id,
        email=email,
    )
    logger.info(f"Synced user profile {created.id} for org {org_id} with role {role}")
    return created, True
