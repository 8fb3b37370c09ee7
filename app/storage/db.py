# ==== DATABASE CONNECTION AND SESSION MANAGEMENT ==== #

"""
Database connection and session management for Credit Gate.

This module provides async SQLAlchemy connectivity with lazy engine
initialization and read-session lifecycle management. The credit engine only
reads, so sessions are never committed here.
"""

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncGenerator, Callable

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine
)
from sqlalchemy.orm import declarative_base

from app.settings import settings
from app.observability.metrics import db_connections_active


# ==== SQLALCHEMY CONFIGURATION ==== #

# SQLAlchemy base for model definitions
Base = declarative_base()

# Global engine and session factory instances
engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None

# Callable returning a fresh session context; each concurrent read uses its own
SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


# ==== DATABASE INITIALIZATION ==== #


def normalize_database_url(db_url: str) -> str:
    """
    Rewrite PostgreSQL URLs to the asyncpg driver.

    Args:
        db_url (str): Configured database URL

    Returns:
        str: URL usable by the async engine
    """
    if db_url.startswith("postgresql") and not db_url.startswith("postgresql+asyncpg://"):
        db_url = db_url.replace("postgresql+psycopg://", "postgresql+asyncpg://")
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")

    # Fix SSL parameter for asyncpg compatibility
    if "sslmode=require" in db_url:
        db_url = db_url.replace("sslmode=require", "ssl=require")

    return db_url


def init_database(db_url: str | None = None) -> None:
    """
    Initialize database engine and session factory.

    Args:
        db_url (str | None): Override for the configured database URL
    """
    global engine, SessionLocal

    if engine is not None:
        return

    url = normalize_database_url(db_url or settings.DATABASE_URL)

    connect_args = {}
    if url.startswith("postgresql+asyncpg://"):
        connect_args = {
            "server_settings": {
                "application_name": settings.SERVICE_NAME,
                "timezone": "UTC"
            }
        }

    engine = create_async_engine(
        url,
        echo=settings.DB_ECHO,
        pool_pre_ping=True,
        connect_args=connect_args,
    )

    SessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a read session with automatic cleanup.

    Yields:
        AsyncSession: Database session

    Raises:
        Exception: If database connection fails
    """
    if SessionLocal is None:
        init_database()

    async with SessionLocal() as session:
        db_connections_active.inc()
        try:
            yield session
        finally:
            db_connections_active.dec()


async def close_database() -> None:
    """Close database connections on shutdown."""
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
        engine = None
        SessionLocal = None
