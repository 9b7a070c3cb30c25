from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.errors import ConflictError
from ..models import LibraryEntry


def get_user_games(db: Session, user_id: str, status: Optional[str] = None) -> list[LibraryEntry]:
    query = (
        db.query(LibraryEntry)
        .options(joinedload(LibraryEntry.game))
        .filter(LibraryEntry.user_id == user_id)
    )
    if status:
        query = query.filter(LibraryEntry.status == status)
    return query.order_by(LibraryEntry.updated_at.desc(), LibraryEntry.id.desc()).all()


def get_user_game(db: Session, user_id: str, game_id: int) -> Optional[LibraryEntry]:
    return (
        db.query(LibraryEntry)
        .filter(LibraryEntry.user_id == user_id, LibraryEntry.game_id == game_id)
        .first()
    )


def add_game_to_library(db: Session, user_id: str, data: dict[str, Any]) -> LibraryEntry:
    if get_user_game(db, user_id, data["game_id"]) is not None:
        raise ConflictError("Game already in library")
    now = datetime.utcnow()
    entry = LibraryEntry(user_id=user_id, **data)
    if entry.status == "currently_playing" and entry.started_at is None:
        entry.started_at = now
    if entry.status == "completed":
        entry.completed_at = now
    db.add(entry)
    try:
        db.flush()
    except IntegrityError as exc:
        # A concurrent insert passed the pre-check and won uq_user_game.
        db.rollback()
        raise ConflictError("Game already in library") from exc
    return entry


def update_user_game(
    db: Session, entry_id: int, user_id: str, changes: dict[str, Any]
) -> Optional[LibraryEntry]:
    entry = (
        db.query(LibraryEntry)
        .filter(LibraryEntry.id == entry_id, LibraryEntry.user_id == user_id)
        .first()
    )
    if entry is None:
        return None
    now = datetime.utcnow()
    for field, value in changes.items():
        setattr(entry, field, value)
    status = changes.get("status")
    if status == "completed":
        entry.completed_at = now
    elif status == "currently_playing" and entry.started_at is None:
        entry.started_at = now
    entry.updated_at = now
    db.flush()
    return entry


def remove_game_from_library(db: Session, user_id: str, game_id: int) -> int:
    return (
        db.query(LibraryEntry)
        .filter(LibraryEntry.user_id == user_id, LibraryEntry.game_id == game_id)
        .delete(synchronize_session=False)
    )


def activity_for_update(changes: dict[str, Any]) -> Optional[tuple[str, dict[str, Any]]]:
    status = changes.get("status")
    rating = changes.get("rating")
    if status == "completed":
        return "completed", {"rating": rating}
    if rating:
        return "rated", {"rating": rating}
    if status == "currently_playing":
        return "started", {"status": status}
    return None
