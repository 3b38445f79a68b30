"""
Shared pytest configuration for ladder tests.

Uses a local SQLite file through aiosqlite by default. Set TEST_DATABASE_URL
to run the same tests against PostgreSQL.

SAFETY: This module REFUSES to run against any database whose name does not
contain the substring "test".
"""

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./ladder_test.db")

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402
from ladder.database.db import Base  # noqa: E402


def _resolve_test_database_url() -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if the resolved URL does not point to a database
    whose name contains "test".
    """
    url = os.getenv("TEST_DATABASE_URL", os.environ["DATABASE_URL"])

    db_name = url.rsplit("/", 1)[-1].split("?")[0]
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test'.\n\n"
            f"  Resolved URL: {url}\n"
            f"{'=' * 70}"
        )

    return url


TEST_DATABASE_URL = _resolve_test_database_url()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh tables for every test, dropped afterwards."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        from ladder.database import models  # noqa: F401

        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Code that opens its own sessions (init_defaults, scripts) uses the test engine too
    from ladder.database import db

    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    yield engine

    db.AsyncSessionLocal = original_async_session_local

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """Database session on the test engine."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        yield session
