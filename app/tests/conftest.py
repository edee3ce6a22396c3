import os
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from app.db.base import Base
from app.services.webhook_guard import WebhookIdempotencyGuard
import app.models  # noqa: F401


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # every concurrent caller gets its own connection; writers queue on the file lock
        return {"poolclass": NullPool, "connect_args": {"timeout": 30}}
    return {"pool_size": 20, "max_overflow": 40}


@pytest.fixture
async def db_engine(tmp_path):
    """Create a database engine for the tests.

    Function-scoped to ensure it's created in the same event loop as the test.
    Set TEST_DATABASE_URL to run against Postgres instead of a throwaway SQLite file.
    """
    database_url = os.environ.get(
        "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'webhooks_test.db'}")
    engine = create_async_engine(
        database_url,
        echo=False,
        **_engine_options(database_url)
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)  # Clean slate
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    """Factory to create multiple sessions for concurrent tests."""
    return async_sessionmaker(
        bind=db_engine,
        expire_on_commit=False,
        autoflush=False
    )


@pytest.fixture
def guard(db_session_factory):
    return WebhookIdempotencyGuard(db_session_factory)


@pytest.fixture
async def broken_guard(tmp_path):
    """Guard pointing at a database without the processed_webhooks table."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}", poolclass=NullPool)
    yield WebhookIdempotencyGuard(async_sessionmaker(bind=engine, expire_on_commit=False))
    await engine.dispose()
