from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from app.schemas.users import UserSummary


class ExperienceCreate(BaseModel):
    content: str = Field(max_length=2500)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("content must not be empty")
        return value


class ExperienceResponse(BaseModel):
    id: int
    user: UserSummary
    content: str
    created_at: datetime

    class Config:
        from_attributes = True
