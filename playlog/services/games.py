from __future__ import annotations

import calendar
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.text import escape_like
from ..models import Game, LibraryEntry, Review

RETRO_AGE_YEARS = 15
NEW_RELEASE_WINDOW_MONTHS = 3


def months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def is_retro_release(release_date: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A game is retro once its first release is more than fifteen years old."""
    if release_date is None:
        return False
    now = now or datetime.utcnow()
    return release_date < months_before(now, RETRO_AGE_YEARS * 12)


def get_all_games(db: Session, limit: int = 50, offset: int = 0) -> list[Game]:
    return (
        db.query(Game)
        .order_by(Game.created_at.desc(), Game.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_game(db: Session, game_id: int) -> Optional[Game]:
    return db.query(Game).filter(Game.id == game_id).first()


def get_game_by_igdb_id(db: Session, igdb_id: int) -> Optional[Game]:
    return db.query(Game).filter(Game.igdb_id == igdb_id).first()


def get_review_stats(db: Session, game_id: int) -> tuple[float, int]:
    average, count = (
        db.query(func.coalesce(func.avg(Review.rating), 0), func.count(Review.id))
        .filter(Review.game_id == game_id)
        .one()
    )
    return float(average or 0.0), int(count or 0)


def get_game_with_user_data(
    db: Session, game_id: int, user_id: Optional[str]
) -> Optional[dict[str, Any]]:
    game = get_game(db, game_id)
    if game is None:
        return None
    average_rating, review_count = get_review_stats(db, game_id)
    user_game = None
    if user_id:
        user_game = (
            db.query(LibraryEntry)
            .filter(LibraryEntry.game_id == game_id, LibraryEntry.user_id == user_id)
            .first()
        )
    return {
        "game": game,
        "user_game": user_game,
        "average_rating": average_rating,
        "review_count": review_count,
    }


def search_games(db: Session, query: str, limit: int = 20) -> list[Game]:
    pattern = f"%{escape_like(query)}%"
    return (
        db.query(Game)
        .filter(
            or_(
                Game.title.ilike(pattern, escape="\\"),
                Game.description.ilike(pattern, escape="\\"),
                Game.genre.ilike(pattern, escape="\\"),
                Game.developer.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Game.created_at.desc(), Game.id.desc())
        .limit(limit)
        .all()
    )


def create_game(db: Session, data: dict[str, Any]) -> Game:
    values = dict(data)
    if values.get("is_retro") is None:
        values["is_retro"] = is_retro_release(values.get("release_date"))
    game = Game(**values)
    db.add(game)
    db.flush()
    return game


def get_games_by_category(db: Session, category: str, limit: int = 20) -> list[Game]:
    return (
        db.query(Game)
        .filter(Game.genre == category)
        .order_by(Game.created_at.desc(), Game.id.desc())
        .limit(limit)
        .all()
    )


def get_trending_games(db: Session, limit: int = 20) -> list[Game]:
    return (
        db.query(Game)
        .outerjoin(LibraryEntry, LibraryEntry.game_id == Game.id)
        .group_by(Game.id)
        .order_by(func.count(LibraryEntry.id).desc(), Game.id.asc())
        .limit(limit)
        .all()
    )


def get_top_rated_games(db: Session, limit: int = 20) -> list[Game]:
    return (
        db.query(Game)
        .join(Review, Review.game_id == Game.id)
        .group_by(Game.id)
        .having(func.count(Review.id) > 0)
        .order_by(func.avg(Review.rating).desc(), Game.id.asc())
        .limit(limit)
        .all()
    )


def get_new_releases(db: Session, limit: int = 20, now: Optional[datetime] = None) -> list[Game]:
    cutoff = months_before(now or datetime.utcnow(), NEW_RELEASE_WINDOW_MONTHS)
    return (
        db.query(Game)
        .filter(Game.release_date.isnot(None), Game.release_date >= cutoff)
        .order_by(Game.release_date.desc(), Game.id.desc())
        .limit(limit)
        .all()
    )


def get_retro_games(db: Session, limit: int = 20) -> list[Game]:
    return (
        db.query(Game)
        .filter(Game.is_retro.is_(True))
        .order_by(Game.created_at.desc(), Game.id.desc())
        .limit(limit)
        .all()
    )
