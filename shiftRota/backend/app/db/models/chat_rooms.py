from datetime import datetime
from typing import List, Optional
from sqlalchemy import DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.database import Base
from app.db.models.users import Users
from app.db.models.schedules import Schedules


class ChatRooms(Base):
    __tablename__ = "chat_rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    schedule_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("schedules.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    schedule: Mapped[Schedules] = relationship(back_populates="chat_room")
    participants: Mapped[List["ChatParticipants"]] = relationship(
        back_populates="room", cascade="all, delete-orphan", lazy="selectin",
    )
    messages: Mapped[List["ChatMessages"]] = relationship(
        back_populates="room", cascade="all, delete-orphan", order_by="ChatMessages.id", lazy="selectin",
    )
    read_cursors: Mapped[List["ChatReadCursors"]] = relationship(
        back_populates="room", cascade="all, delete-orphan", lazy="selectin",
    )

    @property
    def participant_ids(self) -> list[int]:
        return [p.user_id for p in self.participants]

    def last_read_message_id(self, user_id: int) -> Optional[int]:
        for cursor in self.read_cursors:
            if cursor.user_id == user_id:
                return cursor.last_read_message_id
        return None


class ChatParticipants(Base):
    """Snapshot of the schedule's assignees taken when the room was created."""
    __tablename__ = "chat_participants"

    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("chat_rooms.id", ondelete="CASCADE"), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), primary_key=True)

    room: Mapped[ChatRooms] = relationship(back_populates="participants")


class ChatMessages(Base):
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    room: Mapped[ChatRooms] = relationship(back_populates="messages")
    user: Mapped[Users] = relationship(lazy="selectin")


class ChatReadCursors(Base):
    __tablename__ = "chat_read_cursors"

    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("chat_rooms.id", ondelete="CASCADE"), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), primary_key=True)
    # no FK: the message may have been removed since it was read
    last_read_message_id: Mapped[int] = mapped_column(Integer, nullable=False)

    room: Mapped[ChatRooms] = relationship(back_populates="read_cursors")
