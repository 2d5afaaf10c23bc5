# app/schemas/tickets.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.db.models import PriorityEnum as Priority, TicketStatusEnum as Status
from app.schemas.categories import CategoryBrief
from app.schemas.users import UserBrief


class TicketBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: Priority = Field(default=Priority.medium)
    category_id: Optional[int] = None


class TicketCreate(TicketBase):
    pass


class TicketUpdate(BaseModel):
    # усі поля опційні; змінюються частково.
    # assignee_id/category_id: явний null = зняти значення (дивимось model_fields_set)
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    priority: Optional[Priority] = None
    category_id: Optional[int] = None
    status: Optional[Status] = None
    assignee_id: Optional[int] = None


class TicketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    priority: Priority
    status: Status
    author_id: int
    assignee_id: Optional[int] = None
    category_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None

    category: Optional[CategoryBrief] = None
    author: Optional[UserBrief] = None
    assignee: Optional[UserBrief] = None


class DashboardStats(BaseModel):
    role: str
    total: int
    open: int
    in_progress: int
    resolved: int
    closed: int
    assigned_to_me: Optional[int] = None
    total_users: Optional[int] = None
    total_categories: Optional[int] = None
