from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

NotificationKind = Literal["info", "warning", "success", "error"]
NotificationStatus = Literal["read", "unread"]


class NotificationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    kind: NotificationKind = "info"

    @field_validator("title")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Title is required")
        return cleaned


class NotificationResponse(BaseModel):
    id: int
    title: str
    description: str
    kind: NotificationKind
    status: NotificationStatus
    created_at: datetime


class NotificationUpdateResponse(BaseModel):
    ok: bool = True
    updated: int
