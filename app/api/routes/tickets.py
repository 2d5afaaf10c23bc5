# app/api/routes/tickets.py
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy import select, func, or_, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps import DBDep, UserDep
from app.core.logging import log_extra
from app.db.models import (
    Category,
    Ticket,
    User,
    PriorityEnum as Priority,
    TicketStatusEnum as Status,
)
from app.schemas.tickets import TicketCreate, TicketUpdate, TicketOut
from app.services import notifications, policy

router = APIRouter()
logger = logging.getLogger(__name__)

# статуси, в яких заявка вважається вирішеною (SLA)
RESOLVED_STATUSES = {Status.resolved, Status.closed}

# urgent > high > medium > low
_PRIORITY_RANK = case(
    {Priority.urgent: 4, Priority.high: 3, Priority.medium: 2, Priority.low: 1},
    value=Ticket.priority,
    else_=0,
)


def _with_relations(q):
    return q.options(
        selectinload(Ticket.category),
        selectinload(Ticket.author),
        selectinload(Ticket.assignee),
    )


async def _get_ticket(db: AsyncSession, ticket_id: int) -> Ticket:
    q = _with_relations(select(Ticket).where(Ticket.id == ticket_id))
    # populate_existing: після commit перечитуємо updated_at/зв'язки
    t = (await db.execute(q.execution_options(populate_existing=True))).scalar_one_or_none()
    if not t:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return t


async def _get_visible_ticket(db: AsyncSession, ticket_id: int, current: User) -> Ticket:
    t = await _get_ticket(db, ticket_id)
    if not policy.can_view_ticket(current.role, current.id, t):
        raise HTTPException(status_code=403, detail="Forbidden")
    return t


async def _ensure_category(db: AsyncSession, category_id: int) -> None:
    exists = (await db.execute(select(Category.id).where(Category.id == category_id))).first()
    if not exists:
        raise HTTPException(status_code=400, detail="Unknown category")


@router.post("", response_model=TicketOut, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreate, request: Request, db: DBDep, current: UserDep):
    if payload.category_id is not None:
        await _ensure_category(db, payload.category_id)

    t = Ticket(
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        category_id=payload.category_id,
        status=Status.open,
        author_id=current.id,
    )
    db.add(t)
    await db.commit()

    t = await _get_ticket(db, t.id)
    logger.info("ticket_created", extra=log_extra(request, ticket_id=t.id))
    notifications.notify_ticket_created(t, current)
    return t


@router.get("", response_model=list[TicketOut])
async def list_tickets(
    db: DBDep,
    current: UserDep,
    status_: Status | None = Query(default=None, alias="status"),
    priority: Priority | None = None,
    category_id: int | None = None,
    assigned_to_me: bool = False,
    q: str | None = Query(default=None, description="search in title/description"),
    sort: Literal["created_at", "updated_at", "priority"] = "created_at",
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    stmt = select(Ticket)
    if not policy.sees_all_tickets(current.role):
        stmt = stmt.where(Ticket.author_id == current.id)
    if status_:
        stmt = stmt.where(Ticket.status == status_)
    if priority:
        stmt = stmt.where(Ticket.priority == priority)
    if category_id is not None:
        stmt = stmt.where(Ticket.category_id == category_id)
    if assigned_to_me:
        stmt = stmt.where(Ticket.assignee_id == current.id)
    if q:
        like = f"%{q.lower()}%"
        stmt = stmt.where(or_(func.lower(Ticket.title).like(like), func.lower(Ticket.description).like(like)))

    if sort == "priority":
        order = (_PRIORITY_RANK.desc(), Ticket.created_at.desc())
    else:
        order = (getattr(Ticket, sort).desc(),)
    stmt = _with_relations(stmt).order_by(*order, Ticket.id.desc()).limit(limit).offset(offset)

    rows = (await db.execute(stmt)).scalars().all()
    return policy.visible_tickets(current.role, current.id, rows)


@router.get("/{ticket_id}", response_model=TicketOut)
async def get_ticket(ticket_id: int, db: DBDep, current: UserDep):
    return await _get_visible_ticket(db, ticket_id, current)


@router.patch("/{ticket_id}", response_model=TicketOut)
async def patch_ticket(ticket_id: int, payload: TicketUpdate, request: Request, db: DBDep, current: UserDep):
    t = await _get_visible_ticket(db, ticket_id, current)
    sent = payload.model_fields_set

    # --- звичайні поля ---
    fields_changed = any([
        payload.title is not None,
        payload.description is not None,
        payload.priority is not None,
        "category_id" in sent,
    ])
    if fields_changed:
        if not policy.can_edit_ticket_fields(current.role, current.id, t):
            raise HTTPException(status_code=403, detail="Not allowed to edit this ticket")
        if payload.title is not None:
            t.title = payload.title
        if payload.description is not None:
            t.description = payload.description
        if payload.priority is not None:
            t.priority = payload.priority
        if "category_id" in sent:
            if payload.category_id is not None:
                await _ensure_category(db, payload.category_id)
            t.category_id = payload.category_id

    # права на статус/призначення рахуємо від стану ДО змін
    manageable = policy.can_manage(current.role, current.id, t)

    # --- призначення ---
    assignment_changed = False
    if "assignee_id" in sent and payload.assignee_id != t.assignee_id:
        if not policy.can_assign(current.role) or not manageable:
            raise HTTPException(status_code=403, detail="Not allowed to assign this ticket")
        if payload.assignee_id is not None:
            assignee = (await db.execute(select(User).where(User.id == payload.assignee_id))).scalar_one_or_none()
            if not policy.is_valid_assignee(assignee) or not assignee.is_active:
                raise HTTPException(status_code=400, detail="Assignee must be an active agent or admin")
        t.assignee_id = payload.assignee_id
        assignment_changed = True

    # --- зміна статусу ---
    old_status = t.status
    status_changed = False
    if payload.status is not None and payload.status != t.status:
        if not manageable:
            raise HTTPException(status_code=403, detail="Not allowed to change status of this ticket")
        if not policy.allowed_status_transition(current.role, t.status, payload.status):
            raise HTTPException(status_code=400, detail="Illegal status transition")

        t.status = payload.status
        status_changed = True

        # --- SLA: виставляємо/скидаємо resolved_at ---
        if t.status in RESOLVED_STATUSES:
            if t.resolved_at is None:
                t.resolved_at = func.now()
        else:
            t.resolved_at = None

    t.updated_at = func.now()
    await db.commit()

    t = await _get_ticket(db, ticket_id)
    if assignment_changed:
        logger.info("ticket_assigned", extra=log_extra(request, ticket_id=t.id, assignee_id=t.assignee_id))
        notifications.notify_ticket_assigned(t, current)
    if status_changed:
        logger.info(
            "ticket_status_changed",
            extra=log_extra(request, ticket_id=t.id, old_status=old_status.value, new_status=t.status.value),
        )
        notifications.notify_status_changed(t, current, old_status, t.author.email if t.author else None)
    return t


@router.post("/{ticket_id}/claim", response_model=TicketOut)
async def claim_ticket(ticket_id: int, request: Request, db: DBDep, current: UserDep):
    """Агент бере непризначену заявку на себе:
       - тільки agent або admin і тільки поки виконавця немає
       - якщо статус 'open' → ставимо in_progress
    """
    t = await _get_visible_ticket(db, ticket_id, current)
    if not policy.can_claim(current.role, current.id, t):
        if policy.is_staff(current.role):
            raise HTTPException(status_code=409, detail="Ticket is already assigned")
        raise HTTPException(status_code=403, detail="Only agent/admin can claim tickets")

    t.assignee_id = current.id
    if t.status == Status.open:
        t.status = Status.in_progress
    t.updated_at = func.now()
    await db.commit()

    t = await _get_ticket(db, ticket_id)
    logger.info("ticket_claimed", extra=log_extra(request, ticket_id=t.id, assignee_id=current.id))
    notifications.notify_ticket_assigned(t, current)
    return t
