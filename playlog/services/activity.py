from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session, joinedload

from ..models import ACTIVITY_TYPES, Activity, UserFollow


def create_activity(
    db: Session,
    user_id: str,
    activity_type: str,
    game_id: Optional[int] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Activity:
    """Queue an activity row on the caller's transaction; the caller commits."""
    if activity_type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {activity_type}")
    activity = Activity(
        user_id=user_id,
        game_id=game_id,
        type=activity_type,
        metadata_=metadata or {},
    )
    db.add(activity)
    return activity


def _feed_query(db: Session):
    return db.query(Activity).options(joinedload(Activity.user), joinedload(Activity.game))


def get_user_activities(db: Session, user_id: str, limit: int = 20) -> list[Activity]:
    return (
        _feed_query(db)
        .filter(Activity.user_id == user_id)
        .order_by(Activity.created_at.desc(), Activity.id.desc())
        .limit(limit)
        .all()
    )


def get_following_activities(db: Session, user_id: str, limit: int = 20) -> list[Activity]:
    return (
        _feed_query(db)
        .join(UserFollow, UserFollow.following_id == Activity.user_id)
        .filter(UserFollow.follower_id == user_id)
        .order_by(Activity.created_at.desc(), Activity.id.desc())
        .limit(limit)
        .all()
    )
