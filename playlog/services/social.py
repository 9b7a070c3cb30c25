from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, ValidationFailed
from ..models import User, UserFollow


def is_following(db: Session, follower_id: str, following_id: str) -> bool:
    return (
        db.query(UserFollow.id)
        .filter(UserFollow.follower_id == follower_id, UserFollow.following_id == following_id)
        .first()
        is not None
    )


def follow_user(db: Session, follower_id: str, following_id: str) -> UserFollow:
    if follower_id == following_id:
        raise ValidationFailed("Cannot follow yourself")
    if is_following(db, follower_id, following_id):
        raise ConflictError("Already following this user")
    follow = UserFollow(follower_id=follower_id, following_id=following_id)
    db.add(follow)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Already following this user") from exc
    return follow


def unfollow_user(db: Session, follower_id: str, following_id: str) -> int:
    return (
        db.query(UserFollow)
        .filter(UserFollow.follower_id == follower_id, UserFollow.following_id == following_id)
        .delete(synchronize_session=False)
    )


def get_user_followers(db: Session, user_id: str) -> list[User]:
    return (
        db.query(User)
        .join(UserFollow, UserFollow.follower_id == User.id)
        .filter(UserFollow.following_id == user_id)
        .order_by(UserFollow.created_at.desc(), UserFollow.id.desc())
        .all()
    )


def get_user_following(db: Session, user_id: str) -> list[User]:
    return (
        db.query(User)
        .join(UserFollow, UserFollow.following_id == User.id)
        .filter(UserFollow.follower_id == user_id)
        .order_by(UserFollow.created_at.desc(), UserFollow.id.desc())
        .all()
    )


def count_follows(db: Session, user_id: str) -> dict[str, int]:
    followers = db.query(UserFollow).filter(UserFollow.following_id == user_id).count()
    following = db.query(UserFollow).filter(UserFollow.follower_id == user_id).count()
    return {"followers": followers, "following": following}
