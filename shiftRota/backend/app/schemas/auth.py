from pydantic import BaseModel, EmailStr, Field
from app.db.models.users import Gender


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    firstname: str = Field(min_length=2, max_length=50)
    surname: str = Field(min_length=2, max_length=50)
    gender: Gender
