from datetime import datetime

from sqlmodel import SQLModel


class NotificationRead(SQLModel):
    id: int
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime


class UnreadCountRead(SQLModel):
    unread: int
