from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user
from app.db.models.notifications import Notifications
from app.db.models.users import Users
from app.schemas.notifications import NotificationListResponse, NotificationResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])

LIST_LIMIT = 50


def _own_notification(db: Session, notification_id: int, user: Users) -> Notifications:
    notification = db.query(Notifications).filter(
        Notifications.id == notification_id,
        Notifications.user_id == user.id,
    ).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    """Latest notifications for the current user plus the unread count"""
    notifications = (
        db.query(Notifications)
        .filter(Notifications.user_id == current_user.id)
        .order_by(Notifications.created_at.desc(), Notifications.id.desc())
        .limit(LIST_LIMIT)
        .all()
    )
    unread = db.query(Notifications).filter(
        Notifications.user_id == current_user.id,
        Notifications.is_read.is_(False),
    ).count()
    return NotificationListResponse(notifications=notifications, unread_count=unread)


@router.patch("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    updated = db.query(Notifications).filter(
        Notifications.user_id == current_user.id,
        Notifications.is_read.is_(False),
    ).update({Notifications.is_read: True}, synchronize_session=False)
    db.commit()
    return {"updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    notification = _own_notification(db, notification_id, current_user)
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    notification = _own_notification(db, notification_id, current_user)
    db.delete(notification)
    db.commit()
    return None
