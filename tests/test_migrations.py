"""Initial revision stays in step with the ORM models (no Postgres needed)."""

import importlib

import pytest
from sqlalchemy.dialects import postgresql

from app.db.models import Priority, Role, Status, Ticket, User
from app.db.session import sync_database_url

init = importlib.import_module("app.db.migrations.versions.0001_init")


@pytest.mark.parametrize(
    "migration_enum,model_enum,column",
    [
        (init.role_enum, Role, User.__table__.c.role),
        (init.priority_enum, Priority, Ticket.__table__.c.priority),
        (init.status_enum, Status, Ticket.__table__.c.status),
    ],
)
def test_enum_types_match_models(migration_enum, model_enum, column):
    assert isinstance(migration_enum, postgresql.ENUM)
    assert list(migration_enum.enums) == [e.value for e in model_enum]
    assert migration_enum.name == column.type.name


def test_enum_types_are_not_created_by_tables():
    # типи створює upgrade() з checkfirst, а не create_table
    assert all(e.create_type is False for e in init.ENUMS)


@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgresql+asyncpg://desk:pw@db:5432/desk", "postgresql+psycopg2://desk:pw@db:5432/desk"),
        ("sqlite+aiosqlite:///./desk.db", "sqlite:///./desk.db"),
        ("postgresql+psycopg2://desk:pw@db/desk", "postgresql+psycopg2://desk:pw@db/desk"),
    ],
)
def test_sync_database_url(url, expected):
    assert sync_database_url(url) == expected
