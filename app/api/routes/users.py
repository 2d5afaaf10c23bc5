# app/api/routes/users.py
from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select, func, update

from app.api.deps import DBDep, UserDep
from app.core.logging import log_extra
from app.services import policy
from app.services.auth import serialize_user, hash_password
from app.schemas.users import (
    RoleInfo,
    SetRoleIn,
    UserBrief,
    UserOut,
    UsersPage,
    UserUpdateSelf,
)
from app.db.models import Ticket, User, RoleEnum as Role

router = APIRouter()
logger = logging.getLogger(__name__)


async def _role_admin(current: UserDep) -> User:
    if not policy.can_manage_user_roles(current.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admin can manage users")
    return current

RoleAdminDep = Annotated[User, Depends(_role_admin)]

async def _assigner(current: UserDep) -> User:
    if not policy.can_assign(current.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only agent/admin can assign tickets")
    return current

AssignerDep = Annotated[User, Depends(_assigner)]


# ---------- SELF ----------
@router.get("/me", response_model=UserOut)
async def get_me(current: UserDep):
    return UserOut(**serialize_user(current))

@router.patch("/me", response_model=UserOut)
async def update_me(payload: UserUpdateSelf, db: DBDep, current: UserDep):
    changed = False

    # роль тут змінити не можна — тільки профільні поля
    for field in ("full_name", "username", "avatar_url"):
        value = getattr(payload, field)
        if value is not None:
            setattr(current, field, value)
            changed = True

    if payload.password:
        current.password_hash = hash_password(payload.password)
        changed = True

    if not changed:
        return UserOut(**serialize_user(current))

    current.updated_at = func.now()
    await db.commit()
    await db.refresh(current)
    return UserOut(**serialize_user(current))


@router.get("/roles", response_model=list[RoleInfo])
async def list_roles(current: UserDep):
    return [
        RoleInfo(
            role=r,
            display_name=policy.ROLE_DISPLAY_NAMES[r],
            badge_color=policy.ROLE_BADGE_COLORS[r],
        )
        for r in Role
    ]


# ---------- AGENT / ADMIN ----------
@router.get("/agents", response_model=list[UserBrief])
async def list_assignee_candidates(db: DBDep, current: AssignerDep):
    """Кандидати на призначення: лише agent/admin."""
    rows = (
        await db.execute(
            select(User)
            .where(User.role.in_(list(policy.STAFF_ROLES)))
            .where(User.is_active == True)  # noqa: E712
            .order_by(User.id.asc())
        )
    ).scalars().all()
    return policy.assignee_candidates(current.role, rows)


# ---------- ADMIN ----------
@router.get("", response_model=UsersPage)
async def list_users(
    db: DBDep,
    current: RoleAdminDep,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    q: Optional[str] = Query(None, description="search by email/name"),
    role: Optional[Role] = Query(None),
):
    stmt = select(User)
    if q:
        like = f"%{q.lower()}%"
        stmt = stmt.where(
            func.lower(User.email).like(like)
            | func.lower(func.coalesce(User.full_name, "")).like(like)
            | func.lower(func.coalesce(User.username, "")).like(like)
        )
    if role is not None:
        stmt = stmt.where(User.role == role)

    total = (await db.execute(stmt.with_only_columns(func.count(User.id)))).scalar_one()
    rows = (
        await db.execute(
            stmt.order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset((page - 1) * limit)
        )
    ).scalars().all()

    return UsersPage(
        items=[UserOut(**serialize_user(u)) for u in rows],
        total=int(total or 0),
        page=page,
        limit=limit,
    )

@router.patch("/{user_id}/role", response_model=UserOut)
async def set_role(user_id: int, payload: SetRoleIn, request: Request, db: DBDep, current: RoleAdminDep):
    u = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not u:
        raise HTTPException(status_code=404, detail="User not found")

    # не даємо адміну зняти права самому собі
    if u.id == current.id and payload.role != Role.admin:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admin cannot change their own role",
        )

    if u.role != payload.role:
        old = u.role
        u.role = payload.role
        u.updated_at = func.now()
        detached = 0
        # виконавцем може бути лише agent/admin — знімаємо призначення
        if not policy.is_staff(payload.role):
            res = await db.execute(
                update(Ticket).where(Ticket.assignee_id == u.id).values(assignee_id=None)
            )
            detached = res.rowcount
        await db.commit()
        await db.refresh(u)
        logger.info(
            "user_role_changed",
            extra=log_extra(
                request,
                user_id=u.id,
                old_role=old.value,
                new_role=u.role.value,
                tickets_unassigned=detached,
            ),
        )
    return UserOut(**serialize_user(u))
