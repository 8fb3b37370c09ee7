# ==== SHARED TEST FIXTURES AND CONFIGURATION ==== #

"""
Shared test fixtures and configuration.

Unit tests stub the store through the session factory; integration tests run
the real queries against a temporary SQLite file through aiosqlite.
"""

import os
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from freezegun import freeze_time
from httpx import AsyncClient, ASGITransport


# ==== FORCE ENVIRONMENT SETUP BEFORE ANY IMPORTS ==== #

# Set environment variables BEFORE importing any app modules
os.environ.update({
    "APP_ENV": "test",
    "DATABASE_URL": "sqlite+aiosqlite:///./credit-gate-test.db",
    "LOG_LEVEL": "WARNING",
    "CREDIT_READ_TIMEOUT_SECONDS": "5",
})

# Now import app modules after environment is set
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.main import create_app
from app.services.policy_loader import clear_cache
from app.storage.db import Base
from tests.factories.data_factories import CreditDataFactory


# ==== TIME FIXTURES ==== #


@pytest.fixture
def today():
    """Evaluation date shared by the credit tests."""
    return date(2025, 8, 17)


@pytest.fixture
def frozen_time(today):
    """Freeze the clock at noon of ``today``; the event loop keeps real time."""
    moment = datetime(today.year, today.month, today.day, 12, 0, 0, tzinfo=timezone.utc)
    with freeze_time(moment, real_asyncio=True) as frozen:
        yield frozen


# ==== COMPANY FIXTURES ==== #


@pytest.fixture
def company_id():
    """Company scope used by the tests."""
    return 1


@pytest.fixture
def company_headers(company_id):
    """HTTP headers carrying the company scope."""
    return {"X-Company-Id": str(company_id)}


@pytest.fixture
def correlation_id():
    """Unique correlation identifier."""
    return str(uuid.uuid4())


@pytest.fixture
def factory(company_id, today):
    """Factory for credit domain rows."""
    return CreditDataFactory(company_id=company_id, today=today)


# ==== DATABASE FIXTURES ==== #


@pytest_asyncio.fixture
async def sqlite_sessionmaker(tmp_path):
    """
    Session maker bound to a fresh SQLite file with every table created.

    Yields:
        async_sessionmaker: Maker for sessions on the temporary database
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'credit.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_sessionmaker):
    """Session factory in the shape the services expect."""
    @asynccontextmanager
    async def open_session():
        async with sqlite_sessionmaker() as session:
            yield session

    return open_session


@pytest.fixture
def seed(sqlite_sessionmaker):
    """Persist rows into the temporary database."""
    async def _seed(*rows):
        async with sqlite_sessionmaker() as session:
            session.add_all(rows)
            await session.commit()

    return _seed


# ==== APPLICATION FIXTURES ==== #


@pytest.fixture
def app():
    """FastAPI test application."""
    return create_app()


@pytest_asyncio.fixture
async def client(app):
    """HTTP test client over ASGI transport."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ==== CLEANUP FIXTURES ==== #


@pytest.fixture(autouse=True)
def reset_policy_defaults():
    """Reload policy defaults for every test."""
    clear_cache()
    yield
    clear_cache()
