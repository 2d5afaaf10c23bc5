# app/schemas/users.py
from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from app.db.models import RoleEnum as Role


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    email: str
    role: Role
    full_name: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    is_active: bool | None = None
    created_at: datetime | None = None


class UserBrief(BaseModel):
    """Коротка картка для вкладення в тікет/коментар."""
    model_config = ConfigDict(from_attributes=True)
    id: int
    full_name: str | None = None
    username: str | None = None
    role: Role


class UserUpdateSelf(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    username: str | None = Field(default=None, min_length=1, max_length=64)
    avatar_url: str | None = Field(default=None, max_length=1024)
    password: str | None = Field(default=None, min_length=6, max_length=128)


class SetRoleIn(BaseModel):
    role: Role


class RoleInfo(BaseModel):
    role: Role
    display_name: str
    badge_color: str


class UsersPage(BaseModel):
    items: list[UserOut]
    total: int
    page: int
    limit: int
