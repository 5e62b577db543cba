# auditdna/infrastructure/database/session.py

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def create_engine(database_url: str) -> AsyncEngine:
    """Engines are created at startup, never at import, so the memory backend needs no driver."""
    return create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create the shared (non-tenant) tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
