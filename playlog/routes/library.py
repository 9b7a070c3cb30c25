from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import (
    LibraryEntryCreate,
    LibraryEntryOut,
    LibraryEntryUpdate,
    LibraryEntryWithGameOut,
)
from ..services import library as library_service
from ..services.activity import create_activity
from ..services.games import get_game
from .deps import get_current_user

router = APIRouter()


@router.get("", response_model=List[LibraryEntryWithGameOut])
def get_library(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return library_service.get_user_games(db, current_user.id, status)


@router.post("", response_model=LibraryEntryOut, status_code=201)
def add_to_library(
    payload: LibraryEntryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not get_game(db, payload.game_id):
        raise HTTPException(status_code=404, detail="Game not found")
    entry = library_service.add_game_to_library(
        db, current_user.id, payload.model_dump(exclude_none=True)
    )
    create_activity(
        db, current_user.id, "added", payload.game_id, {"status": payload.status}
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.patch("/{entry_id}", response_model=LibraryEntryOut)
def update_library_entry(
    entry_id: int,
    payload: LibraryEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    entry = library_service.update_user_game(db, entry_id, current_user.id, changes)
    if entry is None:
        raise HTTPException(status_code=404, detail="Library entry not found")
    activity = library_service.activity_for_update(changes)
    if activity:
        activity_type, metadata = activity
        create_activity(db, current_user.id, activity_type, entry.game_id, metadata)
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/{game_id}", status_code=204)
def remove_from_library(
    game_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    library_service.remove_game_from_library(db, current_user.id, game_id)
    db.commit()
    return Response(status_code=204)
