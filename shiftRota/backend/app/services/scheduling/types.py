"""
Value types shared by the scheduling services: shift templates, the
calendar-day schedule key, assignee references and reconciliation outcomes.
None of them touch the database.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class ShiftDay(str, Enum):
    MONDAY = "monday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


@dataclass(frozen=True)
class ShiftTemplate:
    """A weekly recurring slot. Identity is all four fields."""
    day: str
    location: str
    start_time: str  # HH:MM
    end_time: str  # HH:MM

    def label(self) -> str:
        return f"{self.location} {self.start_time}-{self.end_time}"


@dataclass(frozen=True)
class ScheduleKey:
    """The only legal lookup key for a schedule aggregate."""
    day: date
    shift: ShiftTemplate

    def label(self) -> str:
        return f"{self.shift.label()} on {self.day.strftime('%d/%m/%Y')}"

    def __str__(self) -> str:
        return f"{self.day.isoformat()}|{self.shift.day}|{self.shift.location}|{self.shift.start_time}|{self.shift.end_time}"


@dataclass(frozen=True)
class Assignee:
    """Bare reference to an assigned user plus the category it was staffed under."""
    user_id: int
    gender: str


@dataclass
class ConfirmOutcome:
    schedule_id: int
    created: bool
    added: bool
    newly_confirmed: bool
    is_confirmed: bool
    previous_status: Optional[str] = None


@dataclass
class RetractOutcome:
    schedule_id: Optional[int]
    removed: bool
    deleted: bool
    is_confirmed: Optional[bool] = None
    previous_status: Optional[str] = None
