from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import ReviewCreate, ReviewOut, ReviewUpdate
from ..services import reviews as reviews_service
from ..services.activity import create_activity
from ..services.games import get_game
from .deps import get_current_user

router = APIRouter()


@router.post("", response_model=ReviewOut, status_code=201)
def create_review(
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not get_game(db, payload.game_id):
        raise HTTPException(status_code=404, detail="Game not found")
    review = reviews_service.create_review(db, current_user.id, payload.model_dump())
    create_activity(
        db, current_user.id, "reviewed", payload.game_id, {"rating": payload.rating}
    )
    db.commit()
    db.refresh(review)
    return review


@router.patch("/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = reviews_service.update_review(
        db, review_id, current_user.id, payload.model_dump(exclude_unset=True)
    )
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    db.commit()
    db.refresh(review)
    return review


@router.delete("/{review_id}", status_code=204)
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reviews_service.delete_review(db, review_id, current_user.id)
    db.commit()
    return Response(status_code=204)
