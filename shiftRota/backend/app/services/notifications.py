"""
Durable notifications with best-effort real-time delivery.

The Notification row is the record of delivery; the push over a live
session is a courtesy. Failures here are logged and never reach the
operation that triggered them.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.db.models.notifications import Notifications, NotificationKind
from app.schemas.notifications import NotificationResponse
from app.services.realtime import ConnectionRegistry
from app.services.realtime import events


logger = logging.getLogger(__name__)


def push_notification(registry: ConnectionRegistry, notification: Notifications) -> bool:
    payload = NotificationResponse.model_validate(notification).model_dump(mode="json")
    return registry.send_to(notification.user_id, events.NOTIFICATION, payload)


def notify_users(
    db: Session,
    registry: ConnectionRegistry,
    user_ids: Iterable[int],
    message: str,
    kind: NotificationKind,
    schedule_id: Optional[int] = None,
) -> list[Notifications]:
    """Create one notification per recipient in a single commit, then push each."""
    recipients = list(dict.fromkeys(user_ids))
    if not recipients:
        return []
    try:
        created = [
            Notifications(user_id=uid, message=message, kind=kind, schedule_id=schedule_id)
            for uid in recipients
        ]
        db.add_all(created)
        db.commit()
        for notification in created:
            db.refresh(notification)
    except Exception:
        db.rollback()
        logger.exception("Failed to store %s notification for users %s", kind.value, recipients)
        return []

    for notification in created:
        try:
            push_notification(registry, notification)
        except Exception:
            logger.exception("Failed to push notification %s", notification.id)
    return created


def notify_user(
    db: Session,
    registry: ConnectionRegistry,
    user_id: int,
    message: str,
    kind: NotificationKind,
    schedule_id: Optional[int] = None,
) -> Optional[Notifications]:
    created = notify_users(db, registry, [user_id], message, kind, schedule_id)
    return created[0] if created else None
