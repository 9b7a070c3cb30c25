from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import UserWithStatsOut
from ..services.users import compute_user_stats
from .deps import get_current_user
from .serializers import user_with_stats

router = APIRouter()


@router.get("/user", response_model=UserWithStatsOut)
def get_auth_user(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return user_with_stats(current_user, compute_user_stats(db, current_user.id))
