from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from app.core.config import settings
from app.db.base import Base
import app.models  # noqa: F401  registers tables on Base.metadata

engine = create_async_engine(settings.DATABASE_URL,
                             echo=settings.DB_ECHO,
                             # Pool settings
                             pool_size=10,            # Base connections
                             max_overflow=20,         # Burst capacity
                             pool_timeout=30,         # Wait timeout
                             # Recycle every hour (prevents stale connections)
                             pool_recycle=3600,
                             pool_pre_ping=True
                             )

async_session_factory = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async DB session
    and ensures it's closed after the request.
    """
    async with async_session_factory() as session:
        yield session


async def check_db(session: AsyncSession) -> bool:
    await session.execute(text("SELECT 1"))
    return True


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
