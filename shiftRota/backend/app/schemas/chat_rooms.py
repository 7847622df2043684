from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List
from app.schemas.users import UserSummary


class ChatMessageCreate(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


class ChatMessageResponse(BaseModel):
    id: int
    user: UserSummary
    text: str
    timestamp: datetime

    class Config:
        from_attributes = True


class ChatRoomResponse(BaseModel):
    id: int
    schedule_id: int
    participant_ids: List[int]
    messages: List[ChatMessageResponse]
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCountsResponse(BaseModel):
    unread_counts: Dict[int, int]
