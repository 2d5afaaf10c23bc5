"""Shared fixtures: in-memory SQLite instead of Postgres, mocked RQ queue."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.security import hash_password  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.models import Category, Role, Status, Ticket, User  # noqa: E402
from app.db.session import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.services import notifications  # noqa: E402

PASSWORD = "secret123"
# bcrypt повільний — хешуємо один раз на весь прогін
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def mock_queue(monkeypatch):
    """RQ queue replaced by a mock; enqueue() records calls."""
    queue = MagicMock()
    queue.enqueue.return_value = MagicMock(id="job-1")
    monkeypatch.setattr(notifications, "_get_queue", lambda: queue)
    return queue


@pytest.fixture
async def client(session_factory, mock_queue):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ---------- factories ----------


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    async def _make(role: Role = Role.user, **kwargs) -> User:
        counter["n"] += 1
        n = counter["n"]
        kwargs.setdefault("email", f"{role.value}{n}@example.com")
        kwargs.setdefault("full_name", f"{role.value.title()} {n}")
        kwargs.setdefault("is_active", True)
        async with session_factory() as s:
            user = User(password_hash=PASSWORD_HASH, role=role, **kwargs)
            s.add(user)
            await s.commit()
            await s.refresh(user)
            return user

    return _make


@pytest.fixture
def make_category(session_factory):
    async def _make(name: str = "Technical", color: str = "#ef4444", description: str | None = None) -> Category:
        async with session_factory() as s:
            category = Category(name=name, color=color, description=description)
            s.add(category)
            await s.commit()
            await s.refresh(category)
            return category

    return _make


@pytest.fixture
def make_ticket(session_factory):
    async def _make(author: User, **kwargs) -> Ticket:
        kwargs.setdefault("title", "Printer is on fire")
        kwargs.setdefault("description", "Smoke everywhere, please help")
        kwargs.setdefault("status", Status.open)
        async with session_factory() as s:
            ticket = Ticket(author_id=author.id, **kwargs)
            s.add(ticket)
            await s.commit()
            await s.refresh(ticket)
            return ticket

    return _make


@pytest.fixture
def fetch(session_factory):
    """Read a row back through a fresh session (bypasses the request session)."""

    async def _fetch(model, pk):
        async with session_factory() as s:
            return await s.get(model, pk)

    return _fetch


@pytest.fixture
async def people(make_user):
    """Typical cast: two users, two agents and an admin."""
    return {
        "u1": await make_user(Role.user),
        "u2": await make_user(Role.user),
        "a1": await make_user(Role.agent),
        "a2": await make_user(Role.agent),
        "admin": await make_user(Role.admin),
    }
