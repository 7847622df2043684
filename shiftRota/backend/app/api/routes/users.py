from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_registry, require_admin
from app.db.models.users import Users
from app.schemas.users import UserResponse
from app.services.realtime import ConnectionRegistry
from app.services.scheduling.cascade import delete_user as cascade_delete_user

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
def list_users(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: Users = Depends(require_admin),
):
    return db.query(Users).order_by(Users.surname, Users.firstname).offset(skip).limit(limit).all()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: Users = Depends(require_admin),
):
    user = db.query(Users).filter(Users.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    current_user: Users = Depends(require_admin),
):
    """Delete a user together with their availability, assignments, chat and posts"""
    report = cascade_delete_user(db, registry, user_id, current_user.id)
    if not report.user_deleted:
        raise HTTPException(
            status_code=500,
            detail=f"User could not be deleted, failed steps: {', '.join(sorted(report.failed))}",
        )
    return None
