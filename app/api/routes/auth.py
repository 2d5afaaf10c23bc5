# app/api/routes/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from app.api.deps import DBDep, UserDep
from app.core.config import settings
from app.core.logging import log_extra
from app.schemas.auth import LoginIn, RegisterIn, TokenOut
from app.schemas.users import UserOut
from app.services.auth import (
    authenticate,
    get_user_by_email,
    register_user,
    serialize_user,
    make_token_for_user,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# ===== login / me =====

@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, db: DBDep):
    email = payload.username.strip().lower()

    user = await authenticate(db, email=email, password=payload.password or "")
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is not active",
        )

    token = make_token_for_user(user, remember_me=bool(payload.remember_me))
    return TokenOut(access_token=token, user=UserOut(**serialize_user(user)))


@router.get("/me", response_model=UserOut)
async def me(current: UserDep):
    return UserOut(**serialize_user(current))


# ===== register (звичайний користувач) =====

@router.post("/register", response_model=TokenOut, status_code=201)
async def register(payload: RegisterIn, request: Request, db: DBDep):
    if not settings.allow_self_signup:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Self sign-up is disabled")

    email = payload.email.strip().lower()

    # дублікати → 409 Conflict
    if await get_user_by_email(db, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists",
        )

    u = await register_user(
        db,
        email=email,
        password=payload.password,
        full_name=payload.full_name,
        username=payload.username,
    )
    logger.info("user_registered", extra=log_extra(request, user_id=u.id))

    tok = make_token_for_user(u)
    return TokenOut(access_token=tok, user=UserOut(**serialize_user(u)))
