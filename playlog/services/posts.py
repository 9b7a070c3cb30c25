from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session, joinedload

from ..core.text import strip_markup
from ..models import REACTION_TYPES, GamePost, PostComment, PostReaction


def get_game_post(db: Session, post_id: int) -> Optional[GamePost]:
    return db.query(GamePost).filter(GamePost.id == post_id).first()


def get_game_posts(db: Session, game_id: int, limit: int = 20) -> list[GamePost]:
    return (
        db.query(GamePost)
        .options(joinedload(GamePost.user))
        .filter(GamePost.game_id == game_id)
        .order_by(GamePost.created_at.desc(), GamePost.id.desc())
        .limit(limit)
        .all()
    )


def get_user_game_posts(db: Session, user_id: str, limit: int = 20) -> list[GamePost]:
    return (
        db.query(GamePost)
        .options(joinedload(GamePost.game))
        .filter(GamePost.user_id == user_id)
        .order_by(GamePost.created_at.desc(), GamePost.id.desc())
        .limit(limit)
        .all()
    )


def create_game_post(
    db: Session,
    user_id: str,
    game_id: int,
    content: str,
    image_urls: Optional[list[str]] = None,
    post_type: str = "text",
) -> GamePost:
    post = GamePost(
        user_id=user_id,
        game_id=game_id,
        content=strip_markup(content),
        image_urls=list(image_urls or []),
        post_type=post_type,
    )
    db.add(post)
    db.flush()
    return post


def delete_game_post(db: Session, post_id: int, user_id: str) -> int:
    post = (
        db.query(GamePost)
        .filter(GamePost.id == post_id, GamePost.user_id == user_id)
        .first()
    )
    if post is None:
        return 0
    # ORM delete so reactions and comments cascade on every backend.
    db.delete(post)
    db.flush()
    return 1


def get_post_reactions(db: Session, post_id: int) -> list[PostReaction]:
    return (
        db.query(PostReaction)
        .options(joinedload(PostReaction.user))
        .filter(PostReaction.post_id == post_id)
        .order_by(PostReaction.created_at.asc(), PostReaction.id.asc())
        .all()
    )


def set_post_reaction(db: Session, post_id: int, user_id: str, reaction_type: str) -> PostReaction:
    reaction = (
        db.query(PostReaction)
        .filter(PostReaction.post_id == post_id, PostReaction.user_id == user_id)
        .first()
    )
    if reaction is None:
        reaction = PostReaction(post_id=post_id, user_id=user_id, reaction_type=reaction_type)
        db.add(reaction)
    else:
        reaction.reaction_type = reaction_type
    db.flush()
    return reaction


def remove_post_reaction(db: Session, post_id: int, user_id: str) -> int:
    return (
        db.query(PostReaction)
        .filter(PostReaction.post_id == post_id, PostReaction.user_id == user_id)
        .delete(synchronize_session=False)
    )


def count_reactions(reactions: list[PostReaction]) -> dict[str, int]:
    counts = {reaction_type: 0 for reaction_type in REACTION_TYPES}
    for reaction in reactions:
        if reaction.reaction_type in counts:
            counts[reaction.reaction_type] += 1
    return counts


def get_post_comments(db: Session, post_id: int) -> list[PostComment]:
    return (
        db.query(PostComment)
        .options(joinedload(PostComment.user))
        .filter(PostComment.post_id == post_id)
        .order_by(PostComment.created_at.asc(), PostComment.id.asc())
        .all()
    )


def create_post_comment(db: Session, post_id: int, user_id: str, content: str) -> PostComment:
    comment = PostComment(post_id=post_id, user_id=user_id, content=strip_markup(content))
    db.add(comment)
    db.flush()
    return comment


def delete_post_comment(db: Session, comment_id: int, user_id: str) -> int:
    return (
        db.query(PostComment)
        .filter(PostComment.id == comment_id, PostComment.user_id == user_id)
        .delete(synchronize_session=False)
    )


def get_post_with_details(
    db: Session, post_id: int, viewer_id: Optional[str] = None
) -> Optional[dict[str, Any]]:
    post = (
        db.query(GamePost)
        .options(joinedload(GamePost.user), joinedload(GamePost.game))
        .filter(GamePost.id == post_id)
        .first()
    )
    if post is None:
        return None
    reactions = get_post_reactions(db, post_id)
    user_reaction = None
    if viewer_id:
        user_reaction = next(
            (r.reaction_type for r in reactions if r.user_id == viewer_id),
            None,
        )
    return {
        "post": post,
        "reactions": reactions,
        "comments": get_post_comments(db, post_id),
        "reaction_counts": count_reactions(reactions),
        "user_reaction": user_reaction,
    }
