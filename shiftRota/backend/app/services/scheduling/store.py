"""
Persistence primitives for schedule aggregates.

No business rules live here. Lookups by slot always go through a
ScheduleKey whose day has already been normalised.
"""

from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from app.db.models.schedules import Schedules, ScheduleAssignments
from .dates import month_range
from .types import ScheduleKey

_start_time = Schedules.__table__.c.shift_start_time


def find(db: Session, key: ScheduleKey) -> Optional[Schedules]:
    return (
        db.query(Schedules)
        .filter(Schedules.date == key.day, Schedules.shift == key.shift)
        .first()
    )


def find_or_create(db: Session, key: ScheduleKey) -> Tuple[Schedules, bool]:
    """
    Return the schedule for the key, creating an empty unconfirmed one if absent.

    The insert is flushed immediately so a concurrent creation of the same key
    surfaces as an IntegrityError inside the caller's transaction.
    """
    schedule = find(db, key)
    if schedule is not None:
        return schedule, False
    schedule = Schedules(shift=key.shift, date=key.day, is_confirmed=False)
    db.add(schedule)
    db.flush()
    return schedule, True


def by_id(db: Session, schedule_id: int) -> Optional[Schedules]:
    return db.query(Schedules).filter(Schedules.id == schedule_id).first()


def monthly(db: Session, month: int, year: int) -> List[Schedules]:
    first, last = month_range(month, year)
    return (
        db.query(Schedules)
        .filter(Schedules.date >= first, Schedules.date <= last)
        .order_by(Schedules.date, _start_time, Schedules.id)
        .all()
    )


def for_user(
    db: Session,
    user_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> List[Schedules]:
    """Schedules the user is assigned to, optionally limited to one month."""
    query = (
        db.query(Schedules)
        .join(ScheduleAssignments, ScheduleAssignments.schedule_id == Schedules.id)
        .filter(ScheduleAssignments.user_id == user_id)
    )
    if month is not None and year is not None:
        first, last = month_range(month, year)
        query = query.filter(Schedules.date >= first, Schedules.date <= last)
    return query.order_by(Schedules.date, _start_time, Schedules.id).all()


def save(db: Session, schedule: Schedules) -> Schedules:
    db.add(schedule)
    db.flush()
    return schedule


def delete(db: Session, schedule: Schedules) -> None:
    db.delete(schedule)
    db.flush()
