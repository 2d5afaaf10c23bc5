# app/services/auth.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import verify_password, hash_password, create_access_token
from app.db.models import User, RoleEnum as Role


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email))
    return res.scalar_one_or_none()


async def authenticate(db: AsyncSession, *, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if not user or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def register_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    full_name: str | None = None,
    username: str | None = None,
) -> User:
    """Реєстрація завжди з role=user; підвищує роль лише адмін."""
    existing = await get_user_by_email(db, email)
    if existing:
        raise ValueError("user_exists")
    user = User(
        email=email,
        password_hash=hash_password(password),
        role=Role.user,
        is_active=True,
        full_name=full_name,
        username=username,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": getattr(user.role, "value", user.role),
        "full_name": user.full_name,
        "username": user.username,
        "avatar_url": user.avatar_url,
        "is_active": user.is_active,
        "created_at": user.created_at,
    }


def make_token_for_user(user: User, *, remember_me: bool = False) -> str:
    """
    Access-токен (sub = email).
    remember_me=True → збільшений TTL з jwt_remember_expires_min.
    """
    minutes = (
        settings.jwt_remember_expires_min
        if remember_me
        else settings.jwt_expires_min
    )
    return create_access_token(
        subject=user.email,
        secret=settings.jwt_secret,
        expires_minutes=minutes,
        algorithm=settings.jwt_alg,
    )
