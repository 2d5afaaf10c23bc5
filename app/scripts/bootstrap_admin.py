from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.security import hash_password
from app.db.models import Category, User, RoleEnum as Role
from app.db.session import AsyncSessionLocal, engine

logger = logging.getLogger("bootstrap")

# стартовий набір категорій (name, description, color)
DEFAULT_CATEGORIES: list[tuple[str, str, str]] = [
    ("General", "Questions that fit nowhere else", "#6b7280"),
    ("Technical", "Bugs, errors and outages", "#ef4444"),
    ("Billing", "Invoices, payments and refunds", "#10b981"),
    ("Account", "Access, passwords and profile", "#3b82f6"),
]


# ---------- helpers ----------
async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email))
    return res.scalar_one_or_none()


async def _ensure_user(
    db: AsyncSession,
    *,
    email: str,
    role: Role,
    password_plain: Optional[str],
    full_name: Optional[str],
) -> User:
    """
    Якщо користувача немає — створює його (потрібен password_plain).
    Якщо є — оновлює роль/ім'я/активність (пароль не чіпає).
    """
    user = await _get_user_by_email(db, email)

    if user is None:
        if not password_plain:
            raise ValueError(f"No password given for new user {email}")
        user = User(
            email=email,
            password_hash=hash_password(password_plain),
            role=role,
            is_active=True,
            full_name=full_name,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info("user_created", extra={"email": email, "role": role.value})
        return user

    values: dict = {}
    if user.role != role:
        values["role"] = role
    if full_name and full_name != user.full_name:
        values["full_name"] = full_name
    if not user.is_active:
        values["is_active"] = True

    if values:
        await db.execute(update(User).where(User.id == user.id).values(**values))
        await db.commit()
        logger.info("user_updated", extra={"email": email, "fields": sorted(values)})
    else:
        logger.info("user_unchanged", extra={"email": email, "role": user.role.value})

    return user


async def _ensure_categories(db: AsyncSession) -> None:
    existing = set((await db.execute(select(Category.name))).scalars().all())
    missing = [c for c in DEFAULT_CATEGORIES if c[0] not in existing]
    for name, description, color in missing:
        db.add(Category(name=name, description=description, color=color))
    if missing:
        await db.commit()
    logger.info("categories_seeded", extra={"created": len(missing)})


async def _seed(
    db: AsyncSession,
    admin_email: str,
    admin_password: str,
    admin_name: Optional[str],
    make_demo_agent: bool,
    make_demo_user: bool,
    make_categories: bool,
) -> None:
    # 1) admin
    await _ensure_user(
        db,
        email=admin_email,
        role=Role.admin,
        password_plain=admin_password,
        full_name=admin_name,
    )

    # 2) demo agent
    if make_demo_agent:
        await _ensure_user(
            db,
            email="agent@example.com",
            role=Role.agent,
            password_plain="Agent123!",
            full_name="Support Agent",
        )

    # 3) demo user
    if make_demo_user:
        await _ensure_user(
            db,
            email="user@example.com",
            role=Role.user,
            password_plain="User123!",
            full_name="User",
        )

    # 4) категорії
    if make_categories:
        await _ensure_categories(db)


async def _run(**kwargs) -> None:
    async with AsyncSessionLocal() as db:
        await _seed(db, **kwargs)
    await engine.dispose()


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed admin, demo users and default categories")
    p.add_argument("email", nargs="?", default=settings.admin_email, help="Admin email")
    p.add_argument("password", nargs="?", default=settings.admin_password, help="Admin password")
    p.add_argument("-n", "--name", default=settings.admin_name, help="Admin full name")

    p.add_argument("--demo-agent", dest="demo_agent", action="store_true", help="Create demo agent")
    p.add_argument("--no-demo-agent", dest="demo_agent", action="store_false", help="Skip demo agent")
    p.set_defaults(demo_agent=settings.create_demo_agent)

    p.add_argument("--demo-user", dest="demo_user", action="store_true", help="Create demo user")
    p.add_argument("--no-demo-user", dest="demo_user", action="store_false", help="Skip demo user")
    p.set_defaults(demo_user=settings.create_demo_user)

    p.add_argument("--no-categories", dest="categories", action="store_false", help="Skip default categories")
    p.set_defaults(categories=True)

    return p.parse_args()


def main() -> None:
    args = _parse_args()
    setup_logging(settings.log_level)

    if not args.email:
        raise SystemExit("Admin email is not set (argument or ADMIN_EMAIL in .env)")
    if not args.password:
        raise SystemExit("Admin password is not set (argument or ADMIN_PASSWORD in .env)")

    asyncio.run(
        _run(
            admin_email=args.email,
            admin_password=args.password,
            admin_name=args.name,
            make_demo_agent=args.demo_agent,
            make_demo_user=args.demo_user,
            make_categories=args.categories,
        )
    )


if __name__ == "__main__":
    main()
