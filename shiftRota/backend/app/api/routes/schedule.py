from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, get_registry, require_admin
from app.db.models.users import Users
from app.schemas.schedules import ScheduleCreate, ScheduleResponse, ScheduleUpdate
from app.services.errors import ForbiddenError, NotFoundError
from app.services.realtime import ConnectionRegistry
from app.services.scheduling import reconciler, store

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.get("/monthly", response_model=List[ScheduleResponse])
def monthly_schedule(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    return store.monthly(db, month, year)


@router.get("/my", response_model=List[ScheduleResponse])
def my_schedule(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    """Schedules the current user is assigned to"""
    return store.for_user(db, current_user.id, month, year)


@router.get("/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    """Single schedule - admins see any, users only their own"""
    schedule = store.by_id(db, schedule_id)
    if schedule is None:
        if not current_user.is_admin:
            raise ForbiddenError("You are not assigned to this schedule")
        raise NotFoundError("Schedule not found")
    if not current_user.is_admin and not schedule.has_assignee(current_user.id):
        raise ForbiddenError("You are not assigned to this schedule")
    return schedule


@router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: ScheduleCreate,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    current_user: Users = Depends(require_admin),
):
    """Create a complete schedule directly - the staffing rule must already hold"""
    return reconciler.create_schedule(
        db, registry, payload.shift.to_template(), payload.date, payload.assigned_users,
    )


@router.put("/{schedule_id}", response_model=ScheduleResponse)
def update_schedule(
    schedule_id: int,
    payload: ScheduleUpdate,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    current_user: Users = Depends(require_admin),
):
    return reconciler.replace_assignees(db, registry, schedule_id, payload.assigned_users)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    current_user: Users = Depends(require_admin),
):
    reconciler.delete_schedule(db, registry, schedule_id)
    return None
