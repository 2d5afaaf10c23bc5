# app/schemas/auth.py
from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field

from app.schemas.users import UserOut


class LoginIn(BaseModel):
    username: EmailStr
    password: str
    # чи хоче користувач подовжену сесію
    remember_me: bool | None = None


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    full_name: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=64)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
