"""
Chat rooms scoped to one schedule.

A room is created on first access and its participants are the schedule's
assignees at that moment. Later roster changes do not touch the
participant list.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.chat_rooms import ChatRooms, ChatParticipants, ChatMessages, ChatReadCursors
from app.db.models.notifications import NotificationKind
from app.db.models.schedules import Schedules
from app.db.models.users import Users
from app.schemas.chat_rooms import ChatMessageResponse
from app.services.errors import ForbiddenError, NotFoundError, ValidationError
from app.services.notifications import notify_users
from app.services.realtime import ConnectionRegistry
from app.services.realtime import events
from app.services.scheduling import store

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


def _load_schedule(db: Session, schedule_id: int, user: Users, write: bool = False) -> Schedules:
    schedule = store.by_id(db, schedule_id)
    if schedule is None:
        raise NotFoundError("Schedule not found")
    if schedule.has_assignee(user.id):
        return schedule
    # admins may read any room but only assignees post
    if user.is_admin and not write:
        return schedule
    raise ForbiddenError("You are not assigned to this schedule")


def _find_room(db: Session, schedule_id: int) -> Optional[ChatRooms]:
    return db.query(ChatRooms).filter(ChatRooms.schedule_id == schedule_id).first()


def _room_for(db: Session, schedule: Schedules) -> ChatRooms:
    room = _find_room(db, schedule.id)
    if room is not None:
        return room
    room = ChatRooms(
        schedule_id=schedule.id,
        participants=[ChatParticipants(user_id=a.user_id) for a in schedule.assigned_users],
    )
    db.add(room)
    try:
        db.commit()
    except IntegrityError:
        # another request created it first
        db.rollback()
        room = _find_room(db, schedule.id)
        if room is None:
            raise
        return room
    db.refresh(room)
    logger.info("Created chat room %s for schedule %s with %d participants", room.id, schedule.id, len(room.participants))
    return room


def get_or_create_room(db: Session, schedule_id: int, user: Users) -> ChatRooms:
    schedule = _load_schedule(db, schedule_id, user)
    return _room_for(db, schedule)


def message_payload(schedule_id: int, message: ChatMessages) -> dict:
    return {
        "schedule_id": schedule_id,
        "message": ChatMessageResponse.model_validate(message).model_dump(mode="json"),
    }


def post_message(
    db: Session,
    registry: ConnectionRegistry,
    schedule_id: int,
    author: Users,
    text: str,
) -> ChatMessages:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message must not be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

    schedule = _load_schedule(db, schedule_id, author, write=True)
    label = schedule.key.label()
    room = _room_for(db, schedule)
    message = ChatMessages(room_id=room.id, user_id=author.id, text=text)
    db.add(message)
    db.commit()
    db.refresh(message)

    payload = message_payload(schedule_id, message)
    try:
        registry.emit_to_room(events.schedule_room(schedule_id), events.SCHEDULE_CHAT_MESSAGE, payload)
    except Exception:
        logger.exception("Failed to emit chat message %s", message.id)

    recipients = [uid for uid in room.participant_ids if uid != author.id]
    notify_users(
        db, registry, recipients,
        f"New message from {author.full_name} about {label}",
        NotificationKind.CHAT,
        schedule_id=schedule_id,
    )
    for uid in recipients:
        try:
            registry.send_to(uid, events.SCHEDULE_MESSAGE_NOTIFICATION, payload)
        except Exception:
            logger.exception("Failed to signal user %s about chat message %s", uid, message.id)
    return message


def unread_count(message_ids: Sequence[int], last_read_id: Optional[int]) -> int:
    """Messages after the read cursor; everything if the cursor is unknown."""
    if last_read_id is None or last_read_id not in message_ids:
        return len(message_ids)
    return len(message_ids) - (list(message_ids).index(last_read_id) + 1)


def unread_counts(db: Session, user_id: int) -> Dict[int, int]:
    schedule_ids = [s.id for s in store.for_user(db, user_id)]
    counts = {sid: 0 for sid in schedule_ids}
    if not schedule_ids:
        return counts
    rooms = db.query(ChatRooms).filter(ChatRooms.schedule_id.in_(schedule_ids)).all()
    for room in rooms:
        counts[room.schedule_id] = unread_count([m.id for m in room.messages], room.last_read_message_id(user_id))
    return counts


def mark_read(db: Session, schedule_id: int, user: Users) -> Optional[int]:
    """Move the user's cursor to the room's last message. Returns that message id."""
    _load_schedule(db, schedule_id, user)
    room = _find_room(db, schedule_id)
    if room is None or not room.messages:
        return None
    last_id = room.messages[-1].id
    cursor = db.get(ChatReadCursors, (room.id, user.id))
    if cursor is None:
        db.add(ChatReadCursors(room_id=room.id, user_id=user.id, last_read_message_id=last_id))
    else:
        cursor.last_read_message_id = last_id
    db.commit()
    return last_id


def history(room: ChatRooms) -> List[dict]:
    return [ChatMessageResponse.model_validate(m).model_dump(mode="json") for m in room.messages]
