from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import List
from app.db.models.users import Gender
from app.schemas.availabilities import ShiftSchema
from app.schemas.users import UserSummary
from app.services.scheduling.dates import normalize


class AssigneeResponse(BaseModel):
    user: UserSummary
    gender: Gender

    class Config:
        from_attributes = True


class ScheduleCreate(BaseModel):
    shift: ShiftSchema
    date: date
    assigned_users: List[int] = Field(min_length=1)

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return normalize(value)


class ScheduleUpdate(BaseModel):
    assigned_users: List[int] = Field(min_length=1)


class ScheduleResponse(BaseModel):
    id: int
    shift: ShiftSchema
    date: date
    is_confirmed: bool
    assigned_users: List[AssigneeResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
