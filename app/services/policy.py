"""
Access & lifecycle policy (хто бачить / керує / коментує заявку)

Чисті функції від (role, user_id, знімок сутності): без БД, без сесії,
без винятків. Відмова = False або порожній список; роутер сам вирішує,
яку помилку показати. Остаточний бекстоп — перевірки на рівні БД.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from app.db.models import Role, Status

STAFF_ROLES: frozenset[Role] = frozenset({Role.agent, Role.admin})

# Вичерпні таблиці для UI (тест перевіряє, що покрито кожну роль)
ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.admin: "Administrator",
    Role.agent: "Support Agent",
    Role.user: "User",
}

ROLE_BADGE_COLORS: dict[Role, str] = {
    Role.admin: "destructive",
    Role.agent: "default",
    Role.user: "secondary",
}


def _role(value: Any) -> Optional[Role]:
    # невідомий рядок ролі = жодних прав
    if isinstance(value, Role):
        return value
    try:
        return Role(getattr(value, "value", value))
    except ValueError:
        return None


def is_staff(role: Any) -> bool:
    return _role(role) in STAFF_ROLES


# ==== Видимість ====


def sees_all_tickets(role: Any) -> bool:
    """agent/admin бачать усі заявки; user — лише свої."""
    return is_staff(role)


def can_view_ticket(role: Any, user_id: Optional[int], ticket: Any) -> bool:
    if sees_all_tickets(role):
        return True
    return user_id is not None and ticket.author_id == user_id


def visible_tickets(role: Any, user_id: Optional[int], tickets: Iterable[Any]) -> list:
    return [t for t in tickets if can_view_ticket(role, user_id, t)]


def visible_comments(role: Any, comments: Iterable[Any]) -> list:
    """Внутрішні коментарі ховаємо від ролі user."""
    if is_staff(role):
        return list(comments)
    return [c for c in comments if not c.is_internal]


# ==== Керування заявкою ====


def can_manage(role: Any, user_id: Optional[int], ticket: Any) -> bool:
    """
    Модель "claim або admin override":
      - admin керує будь-якою заявкою;
      - agent — непризначеною або призначеною саме на нього;
      - user — ніколи.
    """
    r = _role(role)
    if r is Role.admin:
        return True
    if r is Role.agent:
        return ticket.assignee_id is None or ticket.assignee_id == user_id
    return False


def can_claim(role: Any, user_id: Optional[int], ticket: Any) -> bool:
    return is_staff(role) and user_id is not None and ticket.assignee_id is None


def allowed_status_transition(role: Any, from_: Any, to: Any) -> bool:
    """
    Порядок статусів не обмежуємо: для agent/admin дозволено будь-який
    перехід from_ != to. Для user — жодного.
    """
    if not is_staff(role):
        return False
    try:
        return Status(from_) != Status(to)
    except ValueError:
        return False


def can_edit_ticket_fields(role: Any, user_id: Optional[int], ticket: Any) -> bool:
    """
    Заголовок/опис/пріоритет/категорія:
      - автор може, поки заявка 'open';
      - той, хто може керувати заявкою, — будь-коли.
    """
    if can_manage(role, user_id, ticket):
        return True
    is_author = user_id is not None and ticket.author_id == user_id
    return is_author and ticket.status == Status.open


# ==== Коментарі ====


def can_comment(role: Any, user_id: Optional[int], ticket: Any) -> bool:
    return can_view_ticket(role, user_id, ticket)


def can_create_internal_comment(role: Any) -> bool:
    return is_staff(role)


# ==== Призначення ====


def can_assign(role: Any) -> bool:
    return is_staff(role)


def is_valid_assignee(user: Any) -> bool:
    return user is not None and is_staff(user.role)


def assignee_candidates(role: Any, users: Iterable[Any]) -> list:
    if not can_assign(role):
        return []
    return [u for u in users if is_valid_assignee(u)]


# ==== Адмінка ====


def can_manage_categories(role: Any) -> bool:
    return _role(role) is Role.admin


def can_manage_user_roles(role: Any) -> bool:
    return _role(role) is Role.admin
