from enum import Enum
import datetime as dt
from sqlalchemy import Date, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, composite

from app.db.database import Base
from app.db.models.users import Users
from app.services.scheduling.types import ShiftTemplate


class AvailabilityStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class Availabilities(Base):
    __tablename__ = "availabilities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    shift: Mapped[ShiftTemplate] = composite(
        mapped_column("shift_day", String(10), nullable=False),
        mapped_column("shift_location", String(120), nullable=False),
        mapped_column("shift_start_time", String(5), nullable=False),
        mapped_column("shift_end_time", String(5), nullable=False),
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[AvailabilityStatus] = mapped_column(
        SQLEnum(AvailabilityStatus, name="availability_status_enum"),
        nullable=False,
        default=AvailabilityStatus.PENDING,
    )
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user: Mapped[Users] = relationship(lazy="joined")

    __table_args__ = (
        Index("ix_availabilities_user_date", "user_id", "date"),
        Index("ix_availabilities_status", "status"),
    )
