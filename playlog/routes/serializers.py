from typing import Any

from ..models import User
from ..schemas import (
    CommentOut,
    GameOut,
    GamePostOut,
    LibraryEntryOut,
    ReactionOut,
    UserOut,
)


def user_with_stats(user: User, stats: dict[str, Any]) -> dict[str, Any]:
    return {**UserOut.model_validate(user).model_dump(), "stats": stats}


def game_with_user_data(projection: dict[str, Any]) -> dict[str, Any]:
    user_game = projection["user_game"]
    return {
        **GameOut.model_validate(projection["game"]).model_dump(),
        "user_game": LibraryEntryOut.model_validate(user_game).model_dump() if user_game else None,
        "average_rating": projection["average_rating"],
        "review_count": projection["review_count"],
    }


def post_with_details(details: dict[str, Any]) -> dict[str, Any]:
    post = details["post"]
    return {
        **GamePostOut.model_validate(post).model_dump(),
        "user": UserOut.model_validate(post.user).model_dump(),
        "game": GameOut.model_validate(post.game).model_dump(),
        "reactions": [ReactionOut.model_validate(r).model_dump() for r in details["reactions"]],
        "comments": [CommentOut.model_validate(c).model_dump() for c in details["comments"]],
        "reaction_counts": details["reaction_counts"],
        "user_reaction": details["user_reaction"],
    }
