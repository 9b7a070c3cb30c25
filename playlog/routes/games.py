from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Game, User
from ..schemas import (
    GameCreate,
    GameOut,
    GamePostWithUserOut,
    GameWithUserDataOut,
    MediaUploadIn,
    MediaUploadOut,
    ReviewWithUserOut,
)
from ..services import games as games_service
from ..services import posts as posts_service
from ..services import reviews as reviews_service
from ..services.media import MediaStore, get_media_store
from .deps import get_current_user, get_current_user_optional, normalize_limit
from .serializers import game_with_user_data

router = APIRouter()


def _require_game(db: Session, game_id: int) -> Game:
    game = games_service.get_game(db, game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


@router.get("", response_model=List[GameOut])
def list_games(limit: int = 50, offset: int = 0, db: Session = Depends(get_db)):
    return games_service.get_all_games(db, normalize_limit(limit), max(offset, 0))


@router.post("", response_model=GameOut, status_code=201)
def create_game(
    payload: GameCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    game = games_service.create_game(db, payload.model_dump())
    db.commit()
    db.refresh(game)
    return game


@router.get("/search", response_model=List[GameOut])
def search_games(q: Optional[str] = None, limit: int = 20, db: Session = Depends(get_db)):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    return games_service.search_games(db, q.strip(), normalize_limit(limit))


@router.get("/trending", response_model=List[GameOut])
def trending_games(limit: int = 20, db: Session = Depends(get_db)):
    return games_service.get_trending_games(db, normalize_limit(limit))


@router.get("/top-rated", response_model=List[GameOut])
def top_rated_games(limit: int = 20, db: Session = Depends(get_db)):
    return games_service.get_top_rated_games(db, normalize_limit(limit))


@router.get("/new-releases", response_model=List[GameOut])
def new_releases(limit: int = 20, db: Session = Depends(get_db)):
    return games_service.get_new_releases(db, normalize_limit(limit))


@router.get("/retro", response_model=List[GameOut])
def retro_games(limit: int = 20, db: Session = Depends(get_db)):
    return games_service.get_retro_games(db, normalize_limit(limit))


@router.get("/category/{genre}", response_model=List[GameOut])
def games_by_category(genre: str, limit: int = 20, db: Session = Depends(get_db)):
    return games_service.get_games_by_category(db, genre, normalize_limit(limit))


@router.get("/{game_id}", response_model=GameWithUserDataOut)
def get_game(
    game_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    projection = games_service.get_game_with_user_data(
        db, game_id, current_user.id if current_user else None
    )
    if projection is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return game_with_user_data(projection)


@router.get("/{game_id}/reviews", response_model=List[ReviewWithUserOut])
def get_game_reviews(game_id: int, limit: int = 20, db: Session = Depends(get_db)):
    return reviews_service.get_game_reviews(db, game_id, normalize_limit(limit))


@router.get("/{game_id}/posts", response_model=List[GamePostWithUserOut])
def get_game_posts(game_id: int, limit: int = 20, db: Session = Depends(get_db)):
    return posts_service.get_game_posts(db, game_id, normalize_limit(limit))


@router.post("/{game_id}/upload-media", response_model=MediaUploadOut)
def upload_media(
    game_id: int,
    payload: MediaUploadIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    media_store: MediaStore = Depends(get_media_store),
):
    _require_game(db, game_id)
    image_url = media_store.save(payload.image_data, payload.file_name)
    post = posts_service.create_game_post(
        db,
        current_user.id,
        game_id,
        f"Uploaded {payload.file_name or 'screenshot'}",
        image_urls=[image_url],
        post_type="media",
    )
    db.commit()
    db.refresh(post)
    return {"message": "Media uploaded successfully", "post": post, "image_url": image_url}
