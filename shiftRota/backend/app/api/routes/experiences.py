from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user
from app.db.models.experiences import Experiences
from app.db.models.users import Users
from app.schemas.experiences import ExperienceCreate, ExperienceResponse

router = APIRouter(prefix="/experiences", tags=["experiences"])


@router.get("", response_model=List[ExperienceResponse])
def list_experiences(
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    return (
        db.query(Experiences)
        .order_by(Experiences.created_at.desc(), Experiences.id.desc())
        .limit(limit)
        .all()
    )


@router.post("", response_model=ExperienceResponse, status_code=status.HTTP_201_CREATED)
def create_experience(
    payload: ExperienceCreate,
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    experience = Experiences(user_id=current_user.id, content=payload.content)
    db.add(experience)
    db.commit()
    db.refresh(experience)
    return experience


@router.delete("/{experience_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_experience(
    experience_id: int,
    db: Session = Depends(get_db),
    current_user: Users = Depends(get_current_user),
):
    """Author or admin"""
    experience = db.query(Experiences).filter(Experiences.id == experience_id).first()
    if not experience:
        raise HTTPException(status_code=404, detail="Experience not found")
    if experience.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="You can only delete your own posts")
    db.delete(experience)
    db.commit()
    return None
