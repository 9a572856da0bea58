"""API test fixtures — async DB, FastAPI test client and tenant tokens.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - Tokens are minted with the same secret the app verifies with

Design Decisions:
    - SQLite in-memory with StaticPool: one shared connection, so every session
      in a test sees the same tables
    - Two firms plus a solo lawyer and a client: enough to prove tenant isolation
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

import app.models  # noqa: F401
from app.db.base import Base
from app.infrastructure.auth_tokens import create_access_token
from app.infrastructure.database import get_db, DatabaseSessionManager
import app.infrastructure.database as db_module
from app.main import app

FIRM_A = "firm-a"
FIRM_B = "firm-b"


def bearer(user_id: str, firm_id: str | None = None, role: str = "lawyer") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, firm_id, role)}"}


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
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
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def headers_for():
    """Factory: bearer headers for an arbitrary user, firm and role."""
    return bearer


@pytest.fixture
def firm_a():
    return bearer("lawyer-a1", FIRM_A)


@pytest.fixture
def firm_a_colleague():
    return bearer("lawyer-a2", FIRM_A)


@pytest.fixture
def firm_b():
    return bearer("lawyer-b1", FIRM_B)


@pytest.fixture
def solo():
    return bearer("solo-lawyer")


@pytest.fixture
def bank_account(client, firm_a):
    """Factory: create a bank account for firm A and return its JSON."""
    async def _create(**overrides):
        payload = {"name": "Operating Account", "currency": "SAR", "opening_balance": 1000.0}
        payload.update(overrides)
        response = await client.post("/api/v1/bank-accounts", json=payload, headers=firm_a)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create


@pytest.fixture
def employee(client, firm_a):
    async def _create(**overrides):
        payload = {
            "first_name": "Sara",
            "last_name": "Alharbi",
            "id_number": "1234567890",
            "gender": "female",
            "phone": "+966500000000",
            "job_title": "Associate",
            "department": "Litigation",
            "hire_date": "2023-01-01",
            "basic_salary": 12000,
        }
        payload.update(overrides)
        response = await client.post("/api/v1/employees", json=payload, headers=firm_a)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create
