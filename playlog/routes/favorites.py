from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import FavoriteIn, FavoriteOut
from ..services import favorites as favorites_service
from ..services.games import get_game
from .deps import get_current_user

router = APIRouter()


@router.get("", response_model=List[FavoriteOut])
def get_my_favorites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return favorites_service.get_user_favorite_games(db, current_user.id)


@router.post("", response_model=FavoriteOut)
def set_favorite(
    payload: FavoriteIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not get_game(db, payload.game_id):
        raise HTTPException(status_code=404, detail="Game not found")
    favorite = favorites_service.set_favorite_game(
        db, current_user.id, payload.game_id, payload.position
    )
    db.commit()
    db.refresh(favorite)
    return favorite


@router.delete("/{position}", status_code=204)
def remove_favorite(
    position: int = Path(ge=1, le=4),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    favorites_service.remove_favorite_game(db, current_user.id, position)
    db.commit()
    return Response(status_code=204)
