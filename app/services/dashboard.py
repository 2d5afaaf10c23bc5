"""
Dashboard service

Лічильники для дашбордів user/agent/admin. Рахуємо в Python по рядках,
які користувач і так бачить (visible_tickets), без окремих GROUP BY.
"""

from typing import Any, Dict, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.models import Ticket, User, Category, Role, Status
from app.services import policy


def count_by_status(tickets: Iterable[Any]) -> Dict[str, int]:
    counts = {s.value: 0 for s in Status}
    total = 0
    for t in tickets:
        counts[getattr(t.status, "value", t.status)] += 1
        total += 1
    counts["total"] = total
    return counts


async def dashboard_stats(db: AsyncSession, current: User) -> Dict[str, Any]:
    q = select(Ticket)
    if not policy.sees_all_tickets(current.role):
        q = q.where(Ticket.author_id == current.id)
    rows = (await db.execute(q)).scalars().all()
    tickets = policy.visible_tickets(current.role, current.id, rows)

    stats: Dict[str, Any] = {"role": current.role.value, **count_by_status(tickets)}

    if policy.is_staff(current.role):
        stats["assigned_to_me"] = sum(1 for t in tickets if t.assignee_id == current.id)

    if current.role == Role.admin:
        stats["total_users"] = (await db.execute(select(func.count(User.id)))).scalar_one()
        stats["total_categories"] = (await db.execute(select(func.count(Category.id)))).scalar_one()

    return stats
