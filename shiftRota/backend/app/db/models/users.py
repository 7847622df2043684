from sqlalchemy import String, Integer, DateTime, Enum as SQLEnum, func
from datetime import datetime
from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Gender(str, Enum):
    """Staffing category: MALE is category A, FEMALE is category B."""
    MALE = "MALE"
    FEMALE = "FEMALE"


class Users(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    firstname: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    gender: Mapped[Gender] = mapped_column(SQLEnum(Gender, name="gender_enum"), nullable=False)
    role: Mapped[Role] = mapped_column(SQLEnum(Role, name="role_enum"), nullable=False, default=Role.USER)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.surname}"
