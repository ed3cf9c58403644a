import os
import tempfile
import uuid
from datetime import datetime
from decimal import Decimal

# Must be set before herbal_retail.config is imported
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "herbal_retail_test_logs"))

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from herbal_retail.core.security import create_access_token
from herbal_retail.database import get_db
from herbal_retail.models.commission import Base as CommissionBase
from herbal_retail.models.sales import Base as SalesBase, SaleModel, AppointmentModel
from herbal_retail.models.target import Base as TargetBase, TargetModel
from herbal_retail.models.team import Base as TeamBase, TeamMemberModel

MODEL_BASES = [TeamBase, SalesBase, TargetBase, CommissionBase]


# ---------------------------------------------------------
# Engine: one in-memory sqlite database per test
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        for base in MODEL_BASES:
            await conn.run_sync(base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db(sessionmaker):
    """Session for test setup & assertions."""
    async with sessionmaker() as session:
        yield session


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(user_id: str, role: str) -> dict:
    token = create_access_token({"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def manager_headers():
    return auth_headers("manager-1", "manager")


@pytest.fixture()
def rep_headers():
    return lambda user_id: auth_headers(user_id, "health_rep")


# ---------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------
class Seeder:
    """Adds rows to the session; the caller commits."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def rep(self, user_id, full_name=None, role="health_rep"):
        member = TeamMemberModel(user_id=user_id, full_name=full_name or f"Rep {user_id}", role=role)
        self.session.add(member)
        return member

    def sale(self, created_by, total_amount, created_at, currency="PKR", status="completed"):
        sale = SaleModel(sale_number=f"S-{uuid.uuid4().hex[:10]}", created_by=created_by,
                         total_amount=Decimal(str(total_amount)), currency=currency, status=status,
                         created_at=created_at)
        self.session.add(sale)
        return sale

    def appointment(self, user_id, commission_amount, scheduled_at, status="completed", linked=True):
        appointment = AppointmentModel(user_id=user_id, customer_name="Walk-in", scheduled_at=scheduled_at,
                                       status=status, sale_id=str(uuid.uuid4()) if linked else None,
                                       commission_amount=Decimal(str(commission_amount)))
        self.session.add(appointment)
        return appointment

    def target(self, user_id, month, target_amount):
        target = TargetModel(user_id=user_id, month=month, target_amount=Decimal(str(target_amount)),
                             created_by="manager-1", created_at=datetime(2025, 1, 1))
        self.session.add(target)
        return target


@pytest.fixture()
def seed(db):
    return Seeder(db)
