from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import (
    FavoriteOut,
    FollowCountsOut,
    GamePostWithGameOut,
    LibraryEntryWithGameOut,
    MessageOut,
    ReviewWithGameOut,
    UserOut,
    UserProfileUpdate,
    UserWithStatsOut,
)
from ..services import favorites as favorites_service
from ..services import library as library_service
from ..services import posts as posts_service
from ..services import reviews as reviews_service
from ..services import social as social_service
from ..services import users as users_service
from .deps import get_current_user, normalize_limit
from .serializers import user_with_stats

router = APIRouter()


def _require_user(db: Session, user_id: str) -> User:
    user = users_service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/profile", response_model=UserOut)
def update_profile(
    payload: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    username = changes.get("username")
    if username and users_service.username_taken(db, username, current_user.id):
        raise HTTPException(status_code=400, detail="Username already taken")
    users_service.update_user_profile(db, current_user, changes)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("", response_model=List[UserOut])
def list_users(
    q: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    limit = normalize_limit(limit)
    if q:
        return users_service.search_users(db, q, limit, max(offset, 0))
    return users_service.list_users(db, limit, max(offset, 0))


@router.get("/{user_id}", response_model=UserWithStatsOut)
def get_user_profile(user_id: str, db: Session = Depends(get_db)):
    projection = users_service.get_user_with_stats(db, user_id)
    if projection is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user_with_stats(projection["user"], projection["stats"])


@router.get("/{user_id}/library", response_model=List[LibraryEntryWithGameOut])
def get_user_library(user_id: str, status: Optional[str] = None, db: Session = Depends(get_db)):
    _require_user(db, user_id)
    return library_service.get_user_games(db, user_id, status)


@router.get("/{user_id}/reviews", response_model=List[ReviewWithGameOut])
def get_user_reviews(user_id: str, limit: int = 20, db: Session = Depends(get_db)):
    return reviews_service.get_user_reviews(db, user_id, normalize_limit(limit))


@router.get("/{user_id}/posts", response_model=List[GamePostWithGameOut])
def get_user_posts(user_id: str, limit: int = 20, db: Session = Depends(get_db)):
    return posts_service.get_user_game_posts(db, user_id, normalize_limit(limit))


@router.get("/{user_id}/favorites", response_model=List[FavoriteOut])
def get_user_favorites(user_id: str, db: Session = Depends(get_db)):
    return favorites_service.get_user_favorite_games(db, user_id)


@router.post("/{user_id}/follow", response_model=MessageOut, status_code=201)
def follow_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if user_id != current_user.id:
        _require_user(db, user_id)
    social_service.follow_user(db, current_user.id, user_id)
    db.commit()
    return {"message": "User followed successfully"}


@router.delete("/{user_id}/follow", status_code=204)
def unfollow_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    social_service.unfollow_user(db, current_user.id, user_id)
    db.commit()
    return Response(status_code=204)


@router.get("/{user_id}/followers", response_model=List[UserOut])
def get_followers(user_id: str, db: Session = Depends(get_db)):
    return social_service.get_user_followers(db, user_id)


@router.get("/{user_id}/following", response_model=List[UserOut])
def get_following(user_id: str, db: Session = Depends(get_db)):
    return social_service.get_user_following(db, user_id)


@router.get("/{user_id}/follow-counts", response_model=FollowCountsOut)
def get_follow_counts(user_id: str, db: Session = Depends(get_db)):
    _require_user(db, user_id)
    return social_service.count_follows(db, user_id)
