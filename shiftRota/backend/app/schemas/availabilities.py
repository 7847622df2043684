from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import List
from app.db.models.availabilities import AvailabilityStatus
from app.schemas.users import UserSummary
from app.services.scheduling.dates import normalize
from app.services.scheduling.types import ShiftDay, ShiftTemplate

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class ShiftSchema(BaseModel):
    day: ShiftDay
    location: str = Field(min_length=1, max_length=120)
    start_time: str = Field(pattern=HHMM)
    end_time: str = Field(pattern=HHMM)

    class Config:
        from_attributes = True

    def to_template(self) -> ShiftTemplate:
        return ShiftTemplate(self.day.value, self.location.strip(), self.start_time, self.end_time)


class AvailabilityItem(BaseModel):
    shift: ShiftSchema
    date: date

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value):
        return normalize(value)


class AvailabilitySubmit(BaseModel):
    availabilities: List[AvailabilityItem] = Field(min_length=1)


class AvailabilityStatusUpdate(BaseModel):
    status: AvailabilityStatus

    @field_validator("status")
    @classmethod
    def not_pending(cls, value: AvailabilityStatus) -> AvailabilityStatus:
        if value == AvailabilityStatus.PENDING:
            raise ValueError("status must be confirmed or rejected")
        return value


class AvailabilityResponse(BaseModel):
    id: int
    user_id: int
    shift: ShiftSchema
    date: date
    status: AvailabilityStatus
    created_at: datetime

    class Config:
        from_attributes = True


class AvailabilityWithUserResponse(AvailabilityResponse):
    user: UserSummary
