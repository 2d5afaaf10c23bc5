import logging

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ..deps import DBDep, UserDep
from app.core.logging import log_extra
from app.db.models import Ticket, Comment, User
from app.schemas.comments import CommentCreate, CommentOut
from app.services import notifications, policy

router = APIRouter()
logger = logging.getLogger(__name__)


async def _load_ticket(db, ticket_id: int, current: User) -> Ticket:
    t = (
        await db.execute(
            select(Ticket).options(selectinload(Ticket.author)).where(Ticket.id == ticket_id)
        )
    ).scalar_one_or_none()
    if not t:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if not policy.can_comment(current.role, current.id, t):
        raise HTTPException(status_code=403, detail="Forbidden")
    return t


@router.post("/{ticket_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def add_comment(ticket_id: int, payload: CommentCreate, request: Request, db: DBDep, current: UserDep):
    t = await _load_ticket(db, ticket_id, current)
    if payload.is_internal and not policy.can_create_internal_comment(current.role):
        raise HTTPException(status_code=403, detail="Internal comments only for agent/admin")

    c = Comment(
        ticket_id=t.id,
        author_id=current.id,
        content=payload.content,
        is_internal=payload.is_internal,
    )
    db.add(c)
    await db.commit()

    c = (
        await db.execute(
            select(Comment).options(selectinload(Comment.author)).where(Comment.id == c.id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    logger.info("comment_added", extra=log_extra(request, ticket_id=t.id, comment_id=c.id, internal=c.is_internal))
    if current.id != t.author_id:
        notifications.notify_comment_added(t, c, current, t.author.email)
    return c


@router.get("/{ticket_id}/comments", response_model=list[CommentOut])
async def list_comments(ticket_id: int, db: DBDep, current: UserDep):
    await _load_ticket(db, ticket_id, current)

    q = (
        select(Comment)
        .options(selectinload(Comment.author))
        .where(Comment.ticket_id == ticket_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    rows = (await db.execute(q)).scalars().all()
    return policy.visible_comments(current.role, rows)
