# app/workers/rq_worker.py
import os
import logging
import json
import hmac, hashlib
from typing import Any, Callable, Mapping

import redis
import requests
from rq import Queue, Worker

from app.core.config import settings
from app.core.logging import setup_logging

logger = logging.getLogger("worker.notifications")

def _sign(payload: Mapping[str, Any]) -> str | None:
    if not settings.webhook_secret:
        return None
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return hmac.new(settings.webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

def _post(event_type: str, payload: Mapping[str, Any]) -> None:
    url = settings.notifications_webhook_url
    if not url:
        logger.debug("webhook_url_missing", extra={"event_type": event_type})
        return
    headers = {"Content-Type": "application/json", "X-Helpdesk-Event": event_type}
    sig = _sign(payload)
    if sig:
        headers["X-Helpdesk-Signature"] = f"sha256={sig}"
    r = requests.post(url, json=payload, headers=headers, timeout=10)
    # 5xx → виняток, RQ перезапустить job за Retry-політикою
    r.raise_for_status()
    logger.info("webhook_sent", extra={"event_type": event_type, "status": r.status_code})

def send_mail_mock(to: str, subject: str, body: str) -> None:
    logger.info("SEND_MAIL", extra={"to": to, "subject": subject, "body_len": len(body)})

def on_ticket_created(payload: Mapping[str, Any]) -> None:
    ticket = payload.get("ticket", {})
    author = payload.get("author_email")
    logger.info("ticket_created", extra={"ticket_id": ticket.get("id")})
    if author:
        send_mail_mock(author, f"Ticket #{ticket.get('id')} created", "Your request was registered.")

def on_status_changed(payload: Mapping[str, Any]) -> None:
    ticket = payload.get("ticket", {})
    old = payload.get("from")
    new = payload.get("to")
    logger.info("status_changed", extra={"ticket_id": ticket.get("id"), "from": old, "to": new})
    email = payload.get("author_email")
    if email:
        send_mail_mock(
            email,
            f"Ticket #{ticket.get('id')} is now {str(new).replace('_', ' ')}",
            f"Status changed from {old} to {new}.",
        )

def on_ticket_assigned(payload: Mapping[str, Any]) -> None:
    ticket = payload.get("ticket", {})
    logger.info("ticket_assigned", extra={"ticket_id": ticket.get("id"), "assignee_id": ticket.get("assignee_id")})

def on_comment_added(payload: Mapping[str, Any]) -> None:
    ticket = payload.get("ticket", {})
    logger.info("comment_added", extra={"ticket_id": ticket.get("id"), "comment_id": payload.get("comment_id")})
    email = payload.get("author_email")
    if email and not payload.get("is_internal"):
        send_mail_mock(email, f"New reply on ticket #{ticket.get('id')}", "Support replied to your request.")

EVENT_HANDLERS: dict[str, Callable[[Mapping[str, Any]], None]] = {
    "ticket_created": on_ticket_created,
    "status_changed": on_status_changed,
    "ticket_assigned": on_ticket_assigned,
    "comment_added": on_comment_added,
}

def handle_event(event_type: str, payload: Mapping[str, Any] | None = None) -> None:
    handler = EVENT_HANDLERS.get(event_type)
    if not handler:
        logger.warning("unknown_event", extra={"event_type": event_type})
        return
    handler(payload or {})
    _post(event_type, payload or {})

def main() -> None:
    setup_logging(settings.log_level)
    logger.info("worker_starting", extra={"queue": settings.notifications_queue})
    conn = redis.from_url(settings.redis_url)
    queue = Queue(settings.notifications_queue, connection=conn)
    worker = Worker([queue], connection=conn, name=os.getenv("WORKER_NAME", "notifications-worker"))
    worker.work(logging_level=settings.log_level)

if __name__ == "__main__":
    main()
