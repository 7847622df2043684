import datetime as dt
from typing import List, Optional, TYPE_CHECKING
from sqlalchemy import Boolean, Date, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, composite

from app.db.database import Base
from app.db.models.users import Users, Gender
from app.services.scheduling.types import Assignee, ScheduleKey, ShiftTemplate

if TYPE_CHECKING:
    from app.db.models.chat_rooms import ChatRooms


class Schedules(Base):
    """One roster per (calendar day, shift template)."""
    __tablename__ = "schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shift: Mapped[ShiftTemplate] = composite(
        mapped_column("shift_day", String(10), nullable=False),
        mapped_column("shift_location", String(120), nullable=False),
        mapped_column("shift_start_time", String(5), nullable=False),
        mapped_column("shift_end_time", String(5), nullable=False),
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    is_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    assigned_users: Mapped[List["ScheduleAssignments"]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="ScheduleAssignments.id",
        lazy="selectin",
    )
    chat_room: Mapped[Optional["ChatRooms"]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint(
            "date", "shift_day", "shift_location", "shift_start_time", "shift_end_time",
            name="uq_schedules_date_shift",
        ),
        Index("ix_schedules_date", "date"),
    )

    @property
    def key(self) -> ScheduleKey:
        return ScheduleKey(day=self.date, shift=self.shift)

    @property
    def assignees(self) -> list[Assignee]:
        return [Assignee(user_id=a.user_id, gender=a.gender) for a in self.assigned_users]

    def has_assignee(self, user_id: int) -> bool:
        return any(a.user_id == user_id for a in self.assigned_users)


class ScheduleAssignments(Base):
    __tablename__ = "schedule_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    schedule_id: Mapped[int] = mapped_column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    gender: Mapped[Gender] = mapped_column(SQLEnum(Gender, name="gender_enum"), nullable=False)

    schedule: Mapped[Schedules] = relationship(back_populates="assigned_users")
    user: Mapped[Users] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("schedule_id", "user_id", name="uq_schedule_assignments_user"),
    )
