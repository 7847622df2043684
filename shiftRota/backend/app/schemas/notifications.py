from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional
from app.db.models.notifications import NotificationKind


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    message: str
    kind: NotificationKind
    schedule_id: Optional[int]
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
