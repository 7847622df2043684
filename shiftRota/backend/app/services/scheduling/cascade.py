"""
Admin removal of a user and everything that references them.

The work is an explicit CascadeDeletePlan: an ordered list of named steps
followed by a final step. Each step commits on its own; a failing step is
rolled back, logged and recorded in the report, and the next step still
runs. The final step (deleting the user row) always runs last.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from sqlalchemy.orm import Session

from app.db.models.availabilities import Availabilities
from app.db.models.chat_rooms import ChatMessages, ChatParticipants, ChatReadCursors
from app.db.models.experiences import Experiences
from app.db.models.messages import Messages
from app.db.models.notifications import Notifications
from app.db.models.schedules import ScheduleAssignments
from app.db.models.users import Users
from app.services.errors import NotFoundError, ValidationError
from app.services.realtime import ConnectionRegistry
from .reconciler import broadcast_schedule_update, remove_assignee

logger = logging.getLogger(__name__)

StepFn = Callable[[Session, int], None]


@dataclass(frozen=True)
class CascadeStep:
    name: str
    run: StepFn


@dataclass
class CascadeReport:
    user_id: int
    completed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    user_deleted: bool = False

    @property
    def ok(self) -> bool:
        return self.user_deleted and not self.failed


@dataclass
class CascadeDeletePlan:
    steps: List[CascadeStep]
    final: CascadeStep

    def execute(self, db: Session, user_id: int) -> CascadeReport:
        report = CascadeReport(user_id=user_id)
        for step in self.steps:
            if self._run(db, user_id, step, report):
                report.completed.append(step.name)
        if self._run(db, user_id, self.final, report):
            report.completed.append(self.final.name)
            report.user_deleted = True
        return report

    @staticmethod
    def _run(db: Session, user_id: int, step: CascadeStep, report: CascadeReport) -> bool:
        try:
            step.run(db, user_id)
            db.commit()
            return True
        except Exception as exc:
            db.rollback()
            logger.exception("Cascade step %r failed for user %s", step.name, user_id)
            report.failed[step.name] = str(exc)
            return False


def _delete_availabilities(db: Session, user_id: int) -> None:
    count = db.query(Availabilities).filter(Availabilities.user_id == user_id).delete(synchronize_session=False)
    logger.info("Deleted %d availabilities of user %s", count, user_id)


def _delete_notifications(db: Session, user_id: int) -> None:
    count = db.query(Notifications).filter(Notifications.user_id == user_id).delete(synchronize_session=False)
    logger.info("Deleted %d notifications of user %s", count, user_id)


def _schedules_step(registry: ConnectionRegistry) -> StepFn:
    def run(db: Session, user_id: int) -> None:
        schedule_ids = [
            sid for (sid,) in
            db.query(ScheduleAssignments.schedule_id).filter(ScheduleAssignments.user_id == user_id).all()
        ]
        for schedule_id in schedule_ids:
            outcome = remove_assignee(db, schedule_id, user_id)
            logger.info(
                "Removed user %s from schedule %s (deleted=%s)", user_id, schedule_id, outcome.deleted,
            )
        if schedule_ids:
            broadcast_schedule_update(registry, None)
    return run


def _leave_chat_rooms(db: Session, user_id: int) -> None:
    # removed users leave no message trail
    messages = db.query(ChatMessages).filter(ChatMessages.user_id == user_id).delete(synchronize_session=False)
    db.query(ChatReadCursors).filter(ChatReadCursors.user_id == user_id).delete(synchronize_session=False)
    rooms = db.query(ChatParticipants).filter(ChatParticipants.user_id == user_id).delete(synchronize_session=False)
    logger.info("Removed user %s from %d chat rooms, deleted %d messages", user_id, rooms, messages)


def _delete_lobby_messages(db: Session, user_id: int) -> None:
    db.query(Messages).filter(Messages.user_id == user_id).delete(synchronize_session=False)


def _delete_experiences(db: Session, user_id: int) -> None:
    db.query(Experiences).filter(Experiences.user_id == user_id).delete(synchronize_session=False)


def _delete_user_row(db: Session, user_id: int) -> None:
    user = db.get(Users, user_id)
    if user is not None:
        db.delete(user)
        db.flush()


def build_user_deletion_plan(registry: ConnectionRegistry) -> CascadeDeletePlan:
    return CascadeDeletePlan(
        steps=[
            CascadeStep("availabilities", _delete_availabilities),
            CascadeStep("notifications", _delete_notifications),
            CascadeStep("schedules", _schedules_step(registry)),
            CascadeStep("chat_rooms", _leave_chat_rooms),
            CascadeStep("lobby_messages", _delete_lobby_messages),
            CascadeStep("experiences", _delete_experiences),
        ],
        final=CascadeStep("user", _delete_user_row),
    )


def delete_user(
    db: Session,
    registry: ConnectionRegistry,
    target_id: int,
    requesting_admin_id: int,
) -> CascadeReport:
    if target_id == requesting_admin_id:
        raise ValidationError("You cannot delete your own account")
    if db.get(Users, target_id) is None:
        raise NotFoundError("User not found")

    report = build_user_deletion_plan(registry).execute(db, target_id)
    if report.failed:
        logger.warning("User %s deletion finished with failed steps: %s", target_id, sorted(report.failed))
    else:
        logger.info("User %s deleted by admin %s", target_id, requesting_admin_id)
    return report
