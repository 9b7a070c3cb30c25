from __future__ import annotations

from sqlalchemy.orm import Session, joinedload

from ..models import FavoriteGame


def get_user_favorite_games(db: Session, user_id: str) -> list[FavoriteGame]:
    return (
        db.query(FavoriteGame)
        .options(joinedload(FavoriteGame.game))
        .filter(FavoriteGame.user_id == user_id)
        .order_by(FavoriteGame.position.asc())
        .all()
    )


def set_favorite_game(db: Session, user_id: str, game_id: int, position: int) -> FavoriteGame:
    """Pin a game to a slot, replacing whatever was there.

    Delete and insert share the caller's transaction, so a failed insert
    rolls the slot back to its previous game.
    """
    remove_favorite_game(db, user_id, position)
    db.flush()
    favorite = FavoriteGame(user_id=user_id, game_id=game_id, position=position)
    db.add(favorite)
    db.flush()
    return favorite


def remove_favorite_game(db: Session, user_id: str, position: int) -> int:
    return (
        db.query(FavoriteGame)
        .filter(FavoriteGame.user_id == user_id, FavoriteGame.position == position)
        .delete(synchronize_session=False)
    )
