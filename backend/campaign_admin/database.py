from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import settings
from .models import Base


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.debug, "future": True}
    if settings.is_sqlite:
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
    )
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# expire_on_commit=False: records are converted to detached dataclasses
# before the session closes, so nothing reads ORM state after commit.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def create_tables(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


async def check_database_connection(bind: AsyncEngine = engine) -> None:
    async with bind.connect() as connection:
        await connection.execute(text("SELECT 1"))
