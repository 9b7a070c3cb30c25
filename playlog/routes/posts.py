from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import GamePost, User
from ..schemas import (
    CommentIn,
    CommentOut,
    GamePostCreate,
    GamePostDetailsOut,
    GamePostOut,
    ReactionIn,
    ReactionOut,
)
from ..services import posts as posts_service
from ..services.games import get_game
from .deps import get_current_user, get_current_user_optional
from .serializers import post_with_details

router = APIRouter()
comments_router = APIRouter()


def _require_post(db: Session, post_id: int) -> GamePost:
    post = posts_service.get_game_post(db, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.post("", response_model=GamePostOut, status_code=201)
def create_post(
    payload: GamePostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not get_game(db, payload.game_id):
        raise HTTPException(status_code=404, detail="Game not found")
    post = posts_service.create_game_post(
        db,
        current_user.id,
        payload.game_id,
        payload.content,
        image_urls=payload.image_urls,
        post_type=payload.post_type,
    )
    db.commit()
    db.refresh(post)
    return post


@router.get("/{post_id}", response_model=GamePostDetailsOut)
def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    details = posts_service.get_post_with_details(
        db, post_id, current_user.id if current_user else None
    )
    if details is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post_with_details(details)


@router.delete("/{post_id}", status_code=204)
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    posts_service.delete_game_post(db, post_id, current_user.id)
    db.commit()
    return Response(status_code=204)


@router.get("/{post_id}/reactions", response_model=List[ReactionOut])
def get_reactions(post_id: int, db: Session = Depends(get_db)):
    return posts_service.get_post_reactions(db, post_id)


@router.post("/{post_id}/reactions", response_model=ReactionOut)
def react_to_post(
    post_id: int,
    payload: ReactionIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_post(db, post_id)
    reaction = posts_service.set_post_reaction(
        db, post_id, current_user.id, payload.reaction_type
    )
    db.commit()
    db.refresh(reaction)
    return reaction


@router.delete("/{post_id}/reactions", status_code=204)
def remove_reaction(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    posts_service.remove_post_reaction(db, post_id, current_user.id)
    db.commit()
    return Response(status_code=204)


@router.get("/{post_id}/comments", response_model=List[CommentOut])
def get_comments(post_id: int, db: Session = Depends(get_db)):
    return posts_service.get_post_comments(db, post_id)


@router.post("/{post_id}/comments", response_model=CommentOut, status_code=201)
def add_comment(
    post_id: int,
    payload: CommentIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_post(db, post_id)
    comment = posts_service.create_post_comment(db, post_id, current_user.id, payload.content)
    db.commit()
    db.refresh(comment)
    return comment


@comments_router.delete("/{comment_id}", status_code=204)
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    posts_service.delete_post_comment(db, comment_id, current_user.id)
    db.commit()
    return Response(status_code=204)
