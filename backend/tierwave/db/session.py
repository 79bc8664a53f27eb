"""Async engine and session factories.

One engine per process. Subscription writes are single conditional UPDATEs
under READ COMMITTED, so no session ever holds a row lock across awaits.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tierwave.core.config import settings


def _build_engine() -> AsyncEngine:
    connect_args: dict = {
        # asyncpg: abort sessions left idle inside a transaction for 5 minutes
        "server_settings": {"idle_in_transaction_session_timeout": "300000"},
        "command_timeout": 60,
    }
    if settings.POSTGRES_SSLMODE == "disable":
        connect_args["ssl"] = False

    return create_async_engine(
        settings.SQLALCHEMY_ASYNC_DATABASE_URI,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_timeout=30,
        isolation_level="READ COMMITTED",
        connect_args=connect_args,
    )


async_engine = _build_engine()

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine, autoflush=False, expire_on_commit=False
)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Session for code running outside a request (scripts, lifespan hooks)."""
    async with AsyncSessionLocal() as db:
        yield db


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_db_context() as db:
        yield db
