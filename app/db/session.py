# app/db/session.py
from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

# alembic ходить синхронним драйвером, застосунок — асинхронним
SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg2",
    "sqlite+aiosqlite": "sqlite",
}

engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)

# expire_on_commit=False: після commit об'єкти ще віддаємо у response_model
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def sync_database_url(url: str | None = None) -> str:
    u = make_url(url or settings.database_url)
    return u.set(drivername=SYNC_DRIVERS.get(u.drivername, u.drivername)).render_as_string(hide_password=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session
