"""Service test fixtures — async DB, fake gateway, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db and get_gateway dependencies overridden for route tests
    - The fake gateway knows TEMPLATE_REF unless a test removes it

Design Decisions:
    - SQLite in-memory: fast, no external dependency; FOR UPDATE SKIP LOCKED is
      ignored there, the conditional UPDATE still guarantees disjoint claims
    - db_manager patched so readiness checks hit the test engine
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from app.db.base import Base
from app.infrastructure.database import get_db, DatabaseSessionManager
from app.infrastructure.shopify_client import get_gateway
from app.services.discount_store import DiscountStore
import app.infrastructure.database as db_module
import app.models  # noqa: F401
from app.main import app
from tests.services.fake_gateway import FakeGateway, make_template

SHOP = "test-shop.myshopify.com"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def store(test_db):
    return DiscountStore(test_db)


@pytest.fixture
def gateway():
    return FakeGateway(make_template())


@pytest.fixture
async def client(test_engine, test_session_factory, gateway):
    """FastAPI test client with DB and gateway dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
        headers={"X-Shop-Domain": SHOP},
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
