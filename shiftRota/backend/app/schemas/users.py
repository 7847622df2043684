from pydantic import BaseModel
from datetime import datetime
from app.db.models.users import Gender, Role


class UserSummary(BaseModel):
    id: int
    firstname: str
    surname: str
    gender: Gender

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    email: str
    role: Role
    is_active: bool
    created_at: datetime
