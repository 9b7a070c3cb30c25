from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from ..core.text import escape_like
from ..models import LibraryEntry, User

# Claims from the identity provider never overwrite fields the user edits.
_CLAIM_FIELDS = ("email", "first_name", "last_name", "profile_image_url")


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def upsert_user(db: Session, user_id: str, claims: Optional[dict] = None) -> User:
    claims = claims or {}
    user = get_user(db, user_id)
    if user is None:
        user = User(id=user_id)
        db.add(user)
    for field in _CLAIM_FIELDS:
        value = claims.get(field)
        if value is not None:
            setattr(user, field, value)
    user.updated_at = datetime.utcnow()
    db.flush()
    return user


def compute_user_stats(db: Session, user_id: str) -> dict[str, Any]:
    row = (
        db.query(
            func.count(case((LibraryEntry.status == "completed", 1))).label("completed"),
            func.count(case((LibraryEntry.status == "currently_playing", 1))).label("playing"),
            func.count(case((LibraryEntry.status == "want_to_play", 1))).label("want_to_play"),
            func.count(case((LibraryEntry.status == "dnf", 1))).label("dnf"),
            func.coalesce(func.sum(LibraryEntry.hours_played), 0).label("hours"),
            func.coalesce(func.avg(LibraryEntry.rating), 0).label("rating"),
        )
        .filter(LibraryEntry.user_id == user_id)
        .one()
    )
    return {
        "games_completed": int(row.completed or 0),
        "games_playing": int(row.playing or 0),
        "games_want_to_play": int(row.want_to_play or 0),
        "games_dnf": int(row.dnf or 0),
        "total_hours_played": int(row.hours or 0),
        "average_rating": float(row.rating or 0.0),
    }


def get_user_with_stats(db: Session, user_id: str) -> Optional[dict[str, Any]]:
    user = get_user(db, user_id)
    if user is None:
        return None
    return {"user": user, "stats": compute_user_stats(db, user_id)}


def update_user_profile(db: Session, user: User, changes: dict[str, Any]) -> User:
    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = datetime.utcnow()
    db.flush()
    return user


def username_taken(db: Session, username: str, exclude_user_id: str) -> bool:
    return (
        db.query(User.id)
        .filter(User.username == username, User.id != exclude_user_id)
        .first()
        is not None
    )


def search_users(db: Session, query: str, limit: int = 20, offset: int = 0) -> list[User]:
    pattern = f"%{escape_like(query)}%"
    return (
        db.query(User)
        .filter(
            or_(
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                User.username.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            )
        )
        .order_by(User.created_at.desc(), User.id)
        .offset(offset)
        .limit(limit)
        .all()
    )


def list_users(db: Session, limit: int = 20, offset: int = 0) -> list[User]:
    return (
        db.query(User)
        .order_by(User.created_at.desc(), User.id)
        .offset(offset)
        .limit(limit)
        .all()
    )
