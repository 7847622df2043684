"""
Folds availability decisions into schedule aggregates.

Every mutation of a schedule goes through _serialized(): the per-key
in-process lock linearises writers in this process, and the version column
plus the unique slot constraint catch writers in other processes. A version
mismatch or a lost creation race rolls back, re-reads and reapplies, up to
RECONCILE_MAX_ATTEMPTS times.

Only this module (and the eager admin paths below) ever sets is_confirmed.
"""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.db.models.availabilities import Availabilities, AvailabilityStatus
from app.db.models.notifications import NotificationKind
from app.db.models.schedules import Schedules, ScheduleAssignments
from app.db.models.users import Users
from app.services.errors import LostUpdateError, NotFoundError, ValidationError
from app.services.notifications import notify_users
from app.services.realtime import ConnectionRegistry
from app.services.realtime import events
from . import store
from .catalog import find_template
from .dates import normalize
from .locks import schedule_locks
from .staffing import is_staffed, staffing_violation
from .types import ConfirmOutcome, RetractOutcome, ScheduleKey, ShiftTemplate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def key_for(entry: Availabilities) -> ScheduleKey:
    return ScheduleKey(day=normalize(entry.date), shift=entry.shift)


def _touch(schedule: Schedules) -> None:
    # forces an UPDATE of the schedule row so the version check runs
    schedule.updated_at = datetime.now(timezone.utc)


def _recompute(schedule: Schedules) -> bool:
    schedule.is_confirmed = is_staffed(a.gender for a in schedule.assignees)
    return schedule.is_confirmed


def _locked_entry(db: Session, entry_id: int) -> Optional[Availabilities]:
    # the caller's copy may predate a decision committed by another session
    return (
        db.query(Availabilities)
        .filter(Availabilities.id == entry_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def _serialized(db: Session, key: ScheduleKey, apply: Callable[[], T]) -> T:
    attempts = max(1, settings.RECONCILE_MAX_ATTEMPTS)
    with schedule_locks.hold(key):
        for attempt in range(1, attempts + 1):
            try:
                result = apply()
                db.commit()
                return result
            except (StaleDataError, IntegrityError) as exc:
                db.rollback()
                logger.warning(
                    "Concurrent update on schedule %s (attempt %d/%d): %s",
                    key, attempt, attempts, exc.__class__.__name__,
                )
            except Exception:
                db.rollback()
                raise
    raise LostUpdateError(f"Could not update the schedule for {key.label()}, please retry")


def broadcast_schedule_update(registry: ConnectionRegistry, schedule_id: Optional[int]) -> None:
    try:
        registry.broadcast(events.SCHEDULE_UPDATED, {"schedule_id": schedule_id})
    except Exception:
        logger.exception("Failed to broadcast schedule update for %s", schedule_id)


def reconcile_confirm(db: Session, entry: Availabilities, registry: ConnectionRegistry) -> ConfirmOutcome:
    """
    Mark the entry confirmed and add its owner to the slot's schedule.

    Creating the schedule, adding the assignee, recomputing is_confirmed and
    the entry's status change are committed together. Re-confirming is a
    no-op on the schedule; a rejected entry raises ValidationError.
    """
    entry_id = entry.id
    key = key_for(entry)

    def apply() -> ConfirmOutcome:
        current = _locked_entry(db, entry_id)
        if current is None:
            raise NotFoundError("Availability not found")
        previous = current.status
        if previous == AvailabilityStatus.REJECTED:
            raise ValidationError("A rejected availability cannot be changed")
        owner = db.get(Users, current.user_id)
        if owner is None:
            raise NotFoundError("User not found")

        schedule, created = store.find_or_create(db, key)
        was_confirmed = False if created else schedule.is_confirmed
        added = False
        if schedule.has_assignee(owner.id):
            logger.info("User %s already assigned to %s", owner.id, key)
        else:
            schedule.assigned_users.append(ScheduleAssignments(user_id=owner.id, gender=owner.gender))
            added = True
            _recompute(schedule)
            _touch(schedule)
            logger.info(
                "User %s %s schedule %s (confirmed=%s)",
                owner.id, "created" if created else "joined", key, schedule.is_confirmed,
            )
        current.status = AvailabilityStatus.CONFIRMED
        db.flush()
        return ConfirmOutcome(
            schedule_id=schedule.id,
            created=created,
            added=added,
            newly_confirmed=not was_confirmed and schedule.is_confirmed,
            is_confirmed=schedule.is_confirmed,
            previous_status=previous,
        )

    outcome = _serialized(db, key, apply)

    if outcome.newly_confirmed:
        schedule = store.by_id(db, outcome.schedule_id)
        if schedule is not None:
            logger.info("Schedule %s is now confirmed", outcome.schedule_id)
            notify_users(
                db, registry,
                [a.user_id for a in schedule.assignees],
                f"Your shift at {key.label()} is confirmed",
                NotificationKind.SCHEDULE,
                schedule_id=outcome.schedule_id,
            )
    broadcast_schedule_update(registry, outcome.schedule_id)
    return outcome


def _retract_user(db: Session, key: ScheduleKey, user_id: int) -> RetractOutcome:
    schedule = store.find(db, key)
    if schedule is None:
        logger.info("No schedule for %s, nothing to retract for user %s", key, user_id)
        return RetractOutcome(schedule_id=None, removed=False, deleted=False)

    schedule_id = schedule.id
    assignment = next((a for a in schedule.assigned_users if a.user_id == user_id), None)
    if assignment is None:
        logger.info("User %s not assigned to %s", user_id, key)
        return RetractOutcome(schedule_id=schedule_id, removed=False, deleted=False, is_confirmed=schedule.is_confirmed)

    schedule.assigned_users.remove(assignment)
    if not schedule.assigned_users:
        store.delete(db, schedule)
        logger.info("Removed user %s from %s, schedule %s deleted (empty)", user_id, key, schedule_id)
        return RetractOutcome(schedule_id=schedule_id, removed=True, deleted=True)

    _recompute(schedule)
    _touch(schedule)
    db.flush()
    logger.info("Removed user %s from %s (confirmed=%s)", user_id, key, schedule.is_confirmed)
    return RetractOutcome(schedule_id=schedule_id, removed=True, deleted=False, is_confirmed=schedule.is_confirmed)


def reconcile_retract(
    db: Session,
    entry: Availabilities,
    registry: ConnectionRegistry,
    delete_entry: bool = False,
    new_status: Optional[AvailabilityStatus] = None,
) -> RetractOutcome:
    """
    Withdraw the entry and, if it was confirmed, remove its owner from the
    slot's schedule.

    The entry's status is re-read under the slot lock, so a confirmation
    committed elsewhere is always retracted. An emptied schedule is deleted
    along with its chat room. Deleting the entry (or moving it to
    new_status) happens in the same transaction. A rejected entry cannot
    be moved to another status.
    """
    entry_id = entry.id
    owner_id = entry.user_id
    key = key_for(entry)

    def apply() -> RetractOutcome:
        current = _locked_entry(db, entry_id)
        if current is None:
            if new_status is not None:
                raise NotFoundError("Availability not found")
            return RetractOutcome(schedule_id=None, removed=False, deleted=False)
        previous = current.status
        if new_status is not None and previous == AvailabilityStatus.REJECTED:
            raise ValidationError("A rejected availability cannot be changed")

        if previous == AvailabilityStatus.CONFIRMED:
            outcome = _retract_user(db, key, owner_id)
        else:
            outcome = RetractOutcome(schedule_id=None, removed=False, deleted=False)
        outcome.previous_status = previous

        if delete_entry:
            db.delete(current)
        elif new_status is not None:
            current.status = new_status
        db.flush()
        return outcome

    outcome = _serialized(db, key, apply)
    broadcast_schedule_update(registry, outcome.schedule_id)
    return outcome


def remove_assignee(db: Session, schedule_id: int, user_id: int) -> RetractOutcome:
    """Retract a user from a schedule by id. Used when the user is deleted."""
    schedule = store.by_id(db, schedule_id)
    if schedule is None:
        return RetractOutcome(schedule_id=None, removed=False, deleted=False)
    key = schedule.key
    return _serialized(db, key, lambda: _retract_user(db, key, user_id))


def _load_assignees(db: Session, user_ids: Iterable[int]) -> List[Users]:
    user_ids = list(user_ids)
    if len(set(user_ids)) != len(user_ids):
        raise ValidationError("A user can only be assigned once")
    users = db.query(Users).filter(Users.id.in_(user_ids)).all()
    found = {u.id for u in users}
    missing = [uid for uid in user_ids if uid not in found]
    if missing:
        raise ValidationError(f"Unknown users: {', '.join(str(m) for m in missing)}")
    violation = staffing_violation(u.gender for u in users)
    if violation:
        raise ValidationError(violation)
    by_id = {u.id: u for u in users}
    return [by_id[uid] for uid in user_ids]


def create_schedule(
    db: Session,
    registry: ConnectionRegistry,
    shift: ShiftTemplate,
    day: date,
    user_ids: List[int],
) -> Schedules:
    """Admin direct creation. The assignee set must already satisfy the staffing rule."""
    template = find_template(shift.day, shift.location, shift.start_time, shift.end_time)
    if template is None:
        raise ValidationError(f"Unknown shift: {shift.day} {shift.label()}")
    key = ScheduleKey(day=normalize(day), shift=template)
    assignees = _load_assignees(db, user_ids)

    def apply() -> int:
        if store.find(db, key) is not None:
            raise ValidationError(f"A schedule already exists for {key.label()}")
        schedule = Schedules(shift=key.shift, date=key.day, is_confirmed=False)
        schedule.assigned_users = [ScheduleAssignments(user_id=u.id, gender=u.gender) for u in assignees]
        _recompute(schedule)
        store.save(db, schedule)
        return schedule.id

    schedule_id = _serialized(db, key, apply)
    logger.info("Admin created schedule %s for %s", schedule_id, key)

    notify_users(
        db, registry, user_ids,
        f"You have been assigned to the shift at {key.label()}",
        NotificationKind.SCHEDULE,
        schedule_id=schedule_id,
    )
    broadcast_schedule_update(registry, schedule_id)
    return store.by_id(db, schedule_id)


def replace_assignees(
    db: Session,
    registry: ConnectionRegistry,
    schedule_id: int,
    user_ids: List[int],
) -> Schedules:
    """Admin update of the assignee set, validated eagerly like create_schedule."""
    schedule = store.by_id(db, schedule_id)
    if schedule is None:
        raise NotFoundError("Schedule not found")
    key = schedule.key
    assignees = _load_assignees(db, user_ids)
    wanted = {u.id for u in assignees}

    def apply() -> None:
        current = store.by_id(db, schedule_id)
        if current is None:
            raise NotFoundError("Schedule not found")
        # keep surviving rows so the unique (schedule, user) pair is never reinserted
        for assignment in [a for a in current.assigned_users if a.user_id not in wanted]:
            current.assigned_users.remove(assignment)
        for user in assignees:
            if not current.has_assignee(user.id):
                current.assigned_users.append(ScheduleAssignments(user_id=user.id, gender=user.gender))
        _recompute(current)
        _touch(current)
        db.flush()

    _serialized(db, key, apply)
    logger.info("Admin replaced assignees of schedule %s with %s", schedule_id, sorted(wanted))

    notify_users(
        db, registry, user_ids,
        f"The shift at {key.label()} has been updated",
        NotificationKind.SCHEDULE,
        schedule_id=schedule_id,
    )
    broadcast_schedule_update(registry, schedule_id)
    return store.by_id(db, schedule_id)


def delete_schedule(db: Session, registry: ConnectionRegistry, schedule_id: int) -> None:
    schedule = store.by_id(db, schedule_id)
    if schedule is None:
        raise NotFoundError("Schedule not found")
    key = schedule.key

    def apply() -> None:
        current = store.by_id(db, schedule_id)
        if current is None:
            raise NotFoundError("Schedule not found")
        store.delete(db, current)

    _serialized(db, key, apply)
    logger.info("Admin deleted schedule %s (%s)", schedule_id, key)
    broadcast_schedule_update(registry, schedule_id)
