# app/api/routes/categories.py
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from sqlalchemy import select, update, func

from app.api.deps import DBDep, UserDep
from app.core.logging import log_extra
from app.db.models import Category, Ticket, User
from app.schemas.categories import CategoryCreate, CategoryOut, CategoryUpdate
from app.services import policy

router = APIRouter()
logger = logging.getLogger(__name__)


async def _category_admin(current: UserDep) -> User:
    if not policy.can_manage_categories(current.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admin can manage categories")
    return current

CategoryAdminDep = Annotated[User, Depends(_category_admin)]


async def _get_category(db, category_id: int) -> Category:
    c = (await db.execute(select(Category).where(Category.id == category_id))).scalar_one_or_none()
    if not c:
        raise HTTPException(status_code=404, detail="Category not found")
    return c


async def _ensure_unique_name(db, name: str, exclude_id: int | None = None) -> None:
    q = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.where(Category.id != exclude_id)
    if (await db.execute(q)).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category with this name already exists")


@router.get("", response_model=list[CategoryOut])
async def list_categories(db: DBDep, current: UserDep):
    rows = (await db.execute(select(Category).order_by(Category.name.asc()))).scalars().all()
    return rows


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate, request: Request, db: DBDep, current: CategoryAdminDep):
    name = payload.name.strip()
    await _ensure_unique_name(db, name)

    c = Category(name=name, description=payload.description, color=payload.color)
    db.add(c)
    await db.commit()
    await db.refresh(c)
    logger.info("category_created", extra=log_extra(request, category_id=c.id))
    return c


@router.patch("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: DBDep,
    current: CategoryAdminDep,
):
    c = await _get_category(db, category_id)

    if payload.name is not None:
        name = payload.name.strip()
        await _ensure_unique_name(db, name, exclude_id=c.id)
        c.name = name
    if payload.description is not None:
        c.description = payload.description
    if payload.color is not None:
        c.color = payload.color

    c.updated_at = func.now()
    await db.commit()
    await db.refresh(c)
    return c


@router.delete("/{category_id}", status_code=204)
async def delete_category(category_id: int, request: Request, db: DBDep, current: CategoryAdminDep):
    c = await _get_category(db, category_id)

    # тікети не видаляємо — лише знімаємо категорію (FK теж SET NULL)
    res = await db.execute(
        update(Ticket).where(Ticket.category_id == c.id).values(category_id=None)
    )
    await db.delete(c)
    await db.commit()
    logger.info(
        "category_deleted",
        extra=log_extra(request, category_id=category_id, tickets_detached=res.rowcount),
    )
    return Response(status_code=204)
