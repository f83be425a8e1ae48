import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import gymdesk.models  # noqa: F401  (registers every table on Base.metadata)
from gymdesk.auth.jwt import create_identity_token
from gymdesk.crud import plansCrud, trainersCrud, usersCrud
from gymdesk.db.postgresql import Base, get_db
from gymdesk.main import app

ORG_ID = "org_alpha"
OTHER_ORG_ID = "org_beta"
ADMIN_SUBJECT = "user_admin"
TRAINER_SUBJECT = "user_trainer"
MEMBER_SUBJECT = "user_member"
TODAY = date(2024, 1, 1)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def staff(db):
    """Admin and trainer profiles linked to identity subjects, plus one member."""
    admin = await usersCrud.create_user(
        db, ORG_ID, "Ada", "Admin", role="admin", external_id=ADMIN_SUBJECT
    )
    trainer_user = await usersCrud.create_user(
        db, ORG_ID, "Tom", "Trainer", role="trainer", external_id=TRAINER_SUBJECT
    )
    member = await usersCrud.create_user(
        db, ORG_ID, "Mia", "Member", role="member", external_id=MEMBER_SUBJECT,
        email="mia@example.com", phone="555-0101",
    )
    return {"admin": admin, "trainer": trainer_user, "member": member}


@pytest.fixture
async def member(db, staff):
    return staff["member"]


@pytest.fixture
async def monthly_plan(db):
    """Membership plan with a 30 day / 1000.00 variant."""
    plan_type = await plansCrud.create_plan_type(db, ORG_ID, "Gym Access", "membership")
    variant = await plansCrud.create_plan_variant(
        db, ORG_ID, plan_type.id, duration_days=30, price=Decimal("1000")
    )
    return plan_type, variant


@pytest.fixture
async def training_plan(db):
    plan_type = await plansCrud.create_plan_type(db, ORG_ID, "Personal Training", "training")
    variant = await plansCrud.create_plan_variant(
        db, ORG_ID, plan_type.id, duration_days=7, price=Decimal("500")
    )
    return plan_type, variant


@pytest.fixture
async def trainer(db):
    return await trainersCrud.create_trainer(db, ORG_ID, "Rocky")


def make_token(subject=ADMIN_SUBJECT, org_id=ORG_ID, org_role="org:admin", **extra):
    return create_identity_token(subject, org_id=org_id, org_role=org_role, **extra)


def auth_headers(subject=ADMIN_SUBJECT, org_id=ORG_ID, org_role="org:admin", **extra):
    return {"Authorization": f"Bearer {make_token(subject, org_id, org_role, **extra)}"}


@pytest.fixture
async def api(session_factory):
    """HTTP client against the ASGI app, sharing the test database."""

    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
