from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, get_registry
from app.db.models.users import Users
from app.schemas.chat_rooms import (
    ChatMessageCreate,
    ChatMessageResponse,
    ChatRoomResponse,
    UnreadCountsResponse,
)
from app.schemas.schedules import ScheduleResponse
from app.services.chat import rooms
from app.services.realtime import ConnectionRegistry
from app.services.scheduling import store

router = APIRouter(prefix="/chat-room", tags=["chat-room"])


@router.get("/my-schedules", response_model=List[ScheduleResponse])
def my_chat_schedules(
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    """Schedules the user can chat in"""
    return store.for_user(db, current_user.id)


@router.get("/unread-counts", response_model=UnreadCountsResponse)
def unread_counts(
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    return UnreadCountsResponse(unread_counts=rooms.unread_counts(db, current_user.id))


@router.get("/{schedule_id}", response_model=ChatRoomResponse)
def get_chat_room(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    return rooms.get_or_create_room(db, schedule_id, current_user)


@router.post("/{schedule_id}/message", response_model=ChatMessageResponse, status_code=status.HTTP_201_CREATED)
def post_chat_message(
    schedule_id: int,
    payload: ChatMessageCreate,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    current_user: Users = Depends(get_current_user),
):
    return rooms.post_message(db, registry, schedule_id, current_user, payload.message)


@router.post("/{schedule_id}/mark-read")
def mark_chat_read(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    return {"last_read_message_id": rooms.mark_read(db, schedule_id, current_user)}
