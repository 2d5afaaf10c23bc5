from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.users import UserBrief

class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10_000)
    is_internal: bool = False

    @field_validator("content")
    @classmethod
    def _strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment must not be empty")
        return v

class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    author_id: int
    content: str
    is_internal: bool
    created_at: datetime
    author: UserBrief | None = None
