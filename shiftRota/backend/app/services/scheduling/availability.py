"""
Availability entries: submission, review and withdrawal.

Every status decision and every withdrawal goes through the reconciler,
which re-reads the entry under the slot lock, so the slot's schedule always
reflects the confirmed entries.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models.availabilities import Availabilities, AvailabilityStatus
from app.db.models.notifications import NotificationKind
from app.db.models.users import Users, Role
from app.services.errors import ForbiddenError, NotFoundError, ValidationError
from app.services.notifications import notify_user, notify_users
from app.services.realtime import ConnectionRegistry
from .catalog import find_template
from .dates import DateLike, is_last_minute, month_range, normalize
from .reconciler import key_for, reconcile_confirm, reconcile_retract
from .types import ScheduleKey, ShiftTemplate

logger = logging.getLogger(__name__)

OPEN_STATUSES = (AvailabilityStatus.PENDING, AvailabilityStatus.CONFIRMED)

_day_col = Availabilities.__table__.c.shift_day
_start_col = Availabilities.__table__.c.shift_start_time


def _resolve(shift: ShiftTemplate, value: DateLike) -> ScheduleKey:
    template = find_template(shift.day, shift.location, shift.start_time, shift.end_time)
    if template is None:
        raise ValidationError(f"Unknown shift: {shift.day} {shift.label()}")
    try:
        day = normalize(value)
    except ValueError as exc:
        raise ValidationError(str(exc))
    return ScheduleKey(day=day, shift=template)


def submit_availabilities(
    db: Session,
    registry: ConnectionRegistry,
    owner: Users,
    items: Iterable[Tuple[ShiftTemplate, DateLike]],
    now: Optional[datetime] = None,
) -> List[Availabilities]:
    """Validate and store a batch of entries as pending, then notify."""
    keys: List[ScheduleKey] = []
    for shift, value in items:
        key = _resolve(shift, value)
        if key in keys:
            raise ValidationError(f"Duplicate availability for {key.label()}")
        keys.append(key)
    if not keys:
        raise ValidationError("No availability submitted")

    existing = (
        db.query(Availabilities)
        .filter(
            Availabilities.user_id == owner.id,
            Availabilities.status.in_(OPEN_STATUSES),
            Availabilities.date.in_({k.day for k in keys}),
        )
        .all()
    )
    taken = {key_for(e) for e in existing}
    for key in keys:
        if key in taken:
            raise ValidationError(f"You already submitted availability for {key.label()}")

    entries = [
        Availabilities(user_id=owner.id, shift=k.shift, date=k.day, status=AvailabilityStatus.PENDING)
        for k in keys
    ]
    db.add_all(entries)
    db.commit()
    for entry in entries:
        db.refresh(entry)
    logger.info("User %s submitted %d availabilities", owner.id, len(entries))

    notify_user(
        db, registry, owner.id,
        f"We received your availability for {len(entries)} shift{'s' if len(entries) != 1 else ''}",
        NotificationKind.AVAILABILITY,
    )

    urgent = [
        k for k in keys
        if is_last_minute(k.day, settings.LAST_MINUTE_PAST_HOURS, settings.LAST_MINUTE_AHEAD_HOURS, now)
    ]
    if urgent:
        admin_ids = [
            uid for (uid,) in db.query(Users.id).filter(Users.role == Role.ADMIN, Users.is_active.is_(True)).all()
        ]
        logger.info("Last-minute availability from user %s (%d entries)", owner.id, len(urgent))
        notify_users(
            db, registry, admin_ids,
            f"{owner.full_name} submitted {len(urgent)} last-minute availabilit{'ies' if len(urgent) != 1 else 'y'}",
            NotificationKind.AVAILABILITY,
        )
    return entries


def list_for_owner(
    db: Session,
    owner_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> List[Availabilities]:
    query = db.query(Availabilities).filter(Availabilities.user_id == owner_id)
    if month is not None and year is not None:
        first, last = month_range(month, year)
        query = query.filter(Availabilities.date >= first, Availabilities.date <= last)
    return query.order_by(Availabilities.date, _start_col, Availabilities.id).all()


def list_all(
    db: Session,
    status: Optional[AvailabilityStatus] = None,
    day: Optional[str] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> List[Availabilities]:
    query = db.query(Availabilities)
    if status is not None:
        query = query.filter(Availabilities.status == status)
    if day is not None:
        query = query.filter(_day_col == day)
    if month is not None and year is not None:
        first, last = month_range(month, year)
        query = query.filter(Availabilities.date >= first, Availabilities.date <= last)
    return query.order_by(Availabilities.date, _day_col, _start_col, Availabilities.id).all()


def get_availability(db: Session, entry_id: int) -> Availabilities:
    entry = db.get(Availabilities, entry_id)
    if entry is None:
        raise NotFoundError("Availability not found")
    return entry


def set_status(
    db: Session,
    registry: ConnectionRegistry,
    entry_id: int,
    new_status: AvailabilityStatus,
) -> Tuple[Availabilities, bool]:
    """
    Admin decision on an entry. Returns the entry and whether its status changed.

    confirmed -> rejected retracts the assignment; rejected entries are final.
    """
    if new_status not in (AvailabilityStatus.CONFIRMED, AvailabilityStatus.REJECTED):
        raise ValidationError("Status must be confirmed or rejected")
    entry = get_availability(db, entry_id)
    key = key_for(entry)
    # the status the decision is based on is read under the slot lock
    if new_status == AvailabilityStatus.CONFIRMED:
        outcome = reconcile_confirm(db, entry, registry)
    else:
        outcome = reconcile_retract(db, entry, registry, new_status=AvailabilityStatus.REJECTED)
    previous = AvailabilityStatus(outcome.previous_status)

    entry = get_availability(db, entry_id)
    changed = previous != new_status
    logger.info("Availability %s: %s -> %s", entry_id, previous.value, new_status.value)
    if changed:
        if new_status == AvailabilityStatus.CONFIRMED:
            notify_user(
                db, registry, entry.user_id,
                f"Your availability for {key.label()} has been confirmed",
                NotificationKind.CONFIRMATION,
            )
        else:
            notify_user(
                db, registry, entry.user_id,
                f"Your availability for {key.label()} was not accepted",
                NotificationKind.AVAILABILITY,
            )
    return entry, changed


def remove_availability(
    db: Session,
    registry: ConnectionRegistry,
    entry_id: int,
    requester: Users,
) -> None:
    entry = get_availability(db, entry_id)
    if entry.user_id != requester.id and not requester.is_admin:
        raise ForbiddenError("You can only remove your own availability")
    # status is re-checked under the slot lock
    reconcile_retract(db, entry, registry, delete_entry=True)
    logger.info("Availability %s removed by user %s", entry_id, requester.id)
