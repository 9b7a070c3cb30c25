from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.errors import ConflictError
from ..core.text import strip_markup
from ..models import Review


def _prepare(values: dict[str, Any]) -> dict[str, Any]:
    prepared = dict(values)
    if "content" in prepared:
        prepared["content"] = strip_markup(prepared["content"])
    if "title" in prepared:
        prepared["title"] = strip_markup(prepared["title"])
    if "recommended_for" in prepared:
        tags = prepared["recommended_for"]
        prepared["recommended_for"] = ",".join(tags) if tags else None
    return prepared


def get_game_reviews(db: Session, game_id: int, limit: int = 20) -> list[Review]:
    return (
        db.query(Review)
        .options(joinedload(Review.user))
        .filter(Review.game_id == game_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
        .all()
    )


def get_user_reviews(db: Session, user_id: str, limit: int = 20) -> list[Review]:
    return (
        db.query(Review)
        .options(joinedload(Review.game))
        .filter(Review.user_id == user_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
        .all()
    )


def create_review(db: Session, user_id: str, data: dict[str, Any]) -> Review:
    existing = (
        db.query(Review.id)
        .filter(Review.user_id == user_id, Review.game_id == data["game_id"])
        .first()
    )
    if existing is not None:
        raise ConflictError("You have already reviewed this game")
    review = Review(user_id=user_id, **_prepare(data))
    db.add(review)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("You have already reviewed this game") from exc
    return review


def update_review(
    db: Session, review_id: int, user_id: str, changes: dict[str, Any]
) -> Optional[Review]:
    review = (
        db.query(Review)
        .filter(Review.id == review_id, Review.user_id == user_id)
        .first()
    )
    if review is None:
        return None
    for field, value in _prepare(changes).items():
        setattr(review, field, value)
    review.updated_at = datetime.utcnow()
    db.flush()
    return review


def delete_review(db: Session, review_id: int, user_id: str) -> int:
    return (
        db.query(Review)
        .filter(Review.id == review_id, Review.user_id == user_id)
        .delete(synchronize_session=False)
    )
