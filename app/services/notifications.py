# app/services/notifications.py
import logging
from typing import Any, Mapping

import redis
from rq import Queue, Retry

from app.core.config import settings

log = logging.getLogger(__name__)

_queue: Queue | None = None


def _get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(settings.notifications_queue, connection=redis.from_url(settings.redis_url))
    return _queue


def enqueue(event_type: str, payload: Mapping[str, Any]) -> str | None:
    """
    Кладемо подію в чергу: у воркері викличеться handle_event.
    Повертає job.id або None у разі помилки (щоб не валити HTTP-запит).
    """
    q = _get_queue()
    try:
        job = q.enqueue(
            "app.workers.rq_worker.handle_event",
            event_type,
            dict(payload),
            job_timeout=60,
            retry=Retry(max=3, interval=[5, 15, 30]),
        )
        return getattr(job, "id", None)
    except Exception as e:
        # логуємо й не піднімаємо виняток — щоб UI не отримував 500
        log.exception("Failed to enqueue event '%s': %s", event_type, e)
        return None


# ==== доменні події ====

def _enum(v: Any) -> Any:
    return getattr(v, "value", v)


def ticket_payload(t: Any) -> dict[str, Any]:
    return {
        "id": t.id,
        "title": t.title,
        "status": _enum(t.status),
        "priority": _enum(t.priority),
        "author_id": t.author_id,
        "assignee_id": t.assignee_id,
        "category_id": t.category_id,
    }


def actor_payload(u: Any) -> dict[str, Any]:
    return {"id": u.id, "email": u.email, "role": _enum(u.role)}


def notify_ticket_created(ticket: Any, author: Any) -> str | None:
    return enqueue("ticket_created", {
        "ticket": ticket_payload(ticket),
        "author_email": author.email,
    })


def notify_status_changed(ticket: Any, actor: Any, old: Any, author_email: str | None) -> str | None:
    return enqueue("status_changed", {
        "ticket": ticket_payload(ticket),
        "actor": actor_payload(actor),
        "from": _enum(old),
        "to": _enum(ticket.status),
        "author_email": author_email,
    })


def notify_ticket_assigned(ticket: Any, actor: Any) -> str | None:
    return enqueue("ticket_assigned", {
        "ticket": ticket_payload(ticket),
        "actor": actor_payload(actor),
    })


def notify_comment_added(ticket: Any, comment: Any, actor: Any, author_email: str | None) -> str | None:
    return enqueue("comment_added", {
        "ticket": ticket_payload(ticket),
        "actor": actor_payload(actor),
        "comment_id": comment.id,
        "is_internal": bool(comment.is_internal),
        # автору внутрішні коментарі не шлемо
        "author_email": None if comment.is_internal else author_email,
    })
