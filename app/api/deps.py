from __future__ import annotations

from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.core.config import settings
from app.core.security import decode_token
from app.db.models import User


# OAuth2 bearer (для інтеграції з /api/docs); префікс /api задається в main.py
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

# Тип для DI сесії БД
DBDep = Annotated[AsyncSession, Depends(get_session)]


async def get_current_user(
    db: DBDep,
    token: Annotated[str, Depends(oauth2_scheme)]
) -> User:
    """
    Декодує Bearer JWT, дістає користувача з БД і перевіряє активність.
    Роль завжди береться з таблиці users, не з токена.
    """
    try:
        payload = decode_token(token, settings.jwt_secret, settings.jwt_alg)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    res = await db.execute(select(User).where(User.email == payload["sub"]))
    user = res.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or not found")
    return user


UserDep = Annotated[User, Depends(get_current_user)]


