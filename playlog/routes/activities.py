from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import ActivityWithDetailsOut
from ..services import activity as activity_service
from .deps import get_current_user, normalize_limit

router = APIRouter()


@router.get("", response_model=List[ActivityWithDetailsOut])
def get_my_activities(
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return activity_service.get_user_activities(db, current_user.id, normalize_limit(limit))


@router.get("/following", response_model=List[ActivityWithDetailsOut])
def get_following_feed(
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return activity_service.get_following_activities(
        db, current_user.id, normalize_limit(limit)
    )
