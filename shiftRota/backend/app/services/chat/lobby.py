import logging
from typing import List

from sqlalchemy.orm import Session

from app.db.models.messages import Messages
from app.services.errors import ValidationError

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50
MAX_MESSAGE_LENGTH = 2000


def recent_messages(db: Session, limit: int = HISTORY_LIMIT) -> List[Messages]:
    """The latest messages, oldest first."""
    latest = db.query(Messages).order_by(Messages.id.desc()).limit(limit).all()
    return list(reversed(latest))


def post_lobby_message(db: Session, user_id: int, text: str) -> Messages:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message must not be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")
    message = Messages(user_id=user_id, text=text)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message
