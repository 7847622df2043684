from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, get_email_sink, get_registry, require_admin
from app.db.models.availabilities import AvailabilityStatus
from app.db.models.users import Users
from app.schemas.availabilities import (
    AvailabilityResponse,
    AvailabilityStatusUpdate,
    AvailabilitySubmit,
    AvailabilityWithUserResponse,
)
from app.services.mailer import EmailSink
from app.services.realtime import ConnectionRegistry
from app.services.scheduling import ShiftDay
from app.services.scheduling import availability as availability_service

router = APIRouter(prefix="/availability", tags=["availability"])


@router.post("", response_model=List[AvailabilityResponse], status_code=status.HTTP_201_CREATED)
def submit_availability(
    payload: AvailabilitySubmit,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    current_user: Users = Depends(get_current_user),
):
    """Submit availability for one or more shifts"""
    items = [(item.shift.to_template(), item.date) for item in payload.availabilities]
    return availability_service.submit_availabilities(db, registry, current_user, items)


@router.get("/my", response_model=List[AvailabilityResponse])
def list_my_availability(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    return availability_service.list_for_owner(db, current_user.id, month, year)


@router.get("/all", response_model=List[AvailabilityWithUserResponse])
def list_all_availability(
    availability_status: Optional[AvailabilityStatus] = Query(None, alias="status"),
    day: Optional[ShiftDay] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: Users = Depends(require_admin),
):
    """List every submission - admin only"""
    return availability_service.list_all(
        db,
        status=availability_status,
        day=day.value if day else None,
        month=month,
        year=year,
    )


@router.patch("/{availability_id}/status", response_model=AvailabilityWithUserResponse)
def update_availability_status(
    availability_id: int,
    payload: AvailabilityStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    email_sink: EmailSink = Depends(get_email_sink),
    current_user: Users = Depends(require_admin),
):
    """Confirm or reject an availability - confirming updates the schedule before responding"""
    entry, changed = availability_service.set_status(db, registry, availability_id, payload.status)
    if changed:
        background_tasks.add_task(
            email_sink.send_availability_status,
            entry.user.email,
            entry.user.firstname,
            entry.shift.label(),
            entry.date.strftime("%d/%m/%Y"),
            entry.status.value,
        )
    return entry


@router.delete("/{availability_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    availability_id: int,
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    current_user: Users = Depends(get_current_user),
):
    """Owner or admin - removing a confirmed availability also removes the schedule assignment"""
    availability_service.remove_availability(db, registry, availability_id, current_user)
    return None
