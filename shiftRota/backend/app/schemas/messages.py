from pydantic import BaseModel
from datetime import datetime
from app.schemas.users import UserSummary


class LobbyMessageResponse(BaseModel):
    id: int
    user: UserSummary
    text: str
    timestamp: datetime

    class Config:
        from_attributes = True
