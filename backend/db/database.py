from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import settings

# Errors a database call raises when the store cannot be reached. OSError is only
# meaningful around database calls, so routers translate these into StoreUnavailable.
STORE_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, OSError)


class StoreUnavailable(Exception):
    """Raised by routers when a database call fails because the store is unreachable; answered with 503."""


class Base(DeclarativeBase):
    pass


def _async_url(url: str) -> str:
    # Plain postgres URLs get the asyncpg driver.
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    return url


def build_engine(url: str, echo: bool = False) -> Optional[AsyncEngine]:
    url = (url or "").strip()
    if not url:
        return None
    return create_async_engine(_async_url(url), echo=echo)


engine = build_engine(settings.database_url, settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False) if engine is not None else None


async def create_db_and_tables():
    # Import models so they are registered on Base.metadata
    from db import scan, scan_log  # noqa: F401

    if engine is None:
        return
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    if async_session_maker is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database not available")
    async with async_session_maker() as session:
        yield session
