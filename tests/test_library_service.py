import pytest

from playlog.core.errors import ConflictError, ValidationFailed
from playlog.models import FavoriteGame, LibraryEntry
from playlog.services.favorites import (
    get_user_favorite_games,
    remove_favorite_game,
    set_favorite_game,
)
from playlog.services.library import (
    activity_for_update,
    add_game_to_library,
    update_user_game,
)
from playlog.services.social import follow_user


def test_duplicate_library_entry_is_a_conflict(db_session, make_user, make_game):
    make_user("u1")
    game = make_game()
    add_game_to_library(db_session, "u1", {"game_id": game.id, "status": "want_to_play"})
    db_session.commit()

    with pytest.raises(ConflictError, match="already in library"):
        add_game_to_library(db_session, "u1", {"game_id": game.id, "status": "completed"})

    assert db_session.query(LibraryEntry).count() == 1


def test_adding_as_playing_stamps_started_at(db_session, make_user, make_game):
    make_user("u1")
    game = make_game()

    entry = add_game_to_library(db_session, "u1", {"game_id": game.id, "status": "currently_playing"})

    assert entry.started_at is not None
    assert entry.completed_at is None


def test_completing_stamps_completed_at(db_session, make_user, make_game):
    make_user("u1")
    game = make_game()
    entry = add_game_to_library(db_session, "u1", {"game_id": game.id, "status": "want_to_play"})
    db_session.commit()

    updated = update_user_game(db_session, entry.id, "u1", {"status": "completed", "progress": 100})

    assert updated.completed_at is not None
    assert updated.progress == 100


def test_update_is_scoped_to_owner(db_session, make_user, make_game):
    make_user("owner")
    make_user("intruder")
    game = make_game()
    entry = add_game_to_library(db_session, "owner", {"game_id": game.id, "status": "want_to_play"})
    db_session.commit()

    assert update_user_game(db_session, entry.id, "intruder", {"status": "dnf"}) is None
    db_session.refresh(entry)
    assert entry.status == "want_to_play"


@pytest.mark.parametrize(
    "changes, expected",
    [
        ({"status": "completed", "rating": 5}, ("completed", {"rating": 5})),
        ({"status": "completed"}, ("completed", {"rating": None})),
        ({"rating": 3}, ("rated", {"rating": 3})),
        ({"status": "currently_playing"}, ("started", {"status": "currently_playing"})),
        ({"progress": 40}, None),
        ({"status": "dnf"}, None),
    ],
)
def test_activity_for_update(changes, expected):
    assert activity_for_update(changes) == expected


def test_favorite_slot_is_replaced_not_duplicated(db_session, make_user, make_game):
    make_user("u1")
    first, second = make_game("First"), make_game("Second")

    set_favorite_game(db_session, "u1", first.id, 1)
    db_session.commit()
    set_favorite_game(db_session, "u1", second.id, 1)
    db_session.commit()

    rows = db_session.query(FavoriteGame).filter_by(user_id="u1", position=1).all()
    assert [row.game_id for row in rows] == [second.id]


def test_removing_a_favorite_twice_is_a_no_op(db_session, make_user, make_game):
    make_user("u1")
    game = make_game()
    set_favorite_game(db_session, "u1", game.id, 2)
    db_session.commit()

    assert remove_favorite_game(db_session, "u1", 2) == 1
    assert remove_favorite_game(db_session, "u1", 2) == 0
    db_session.commit()
    assert db_session.query(FavoriteGame).filter_by(user_id="u1", position=2).count() == 0


def test_favorites_come_back_in_slot_order(db_session, make_user, make_game):
    make_user("u1")
    games = [make_game(f"G{i}") for i in range(3)]
    set_favorite_game(db_session, "u1", games[0].id, 4)
    set_favorite_game(db_session, "u1", games[1].id, 1)
    set_favorite_game(db_session, "u1", games[2].id, 3)
    db_session.commit()

    favorites = get_user_favorite_games(db_session, "u1")

    assert [f.position for f in favorites] == [1, 3, 4]
    assert favorites[0].game.title == "G1"


def test_follow_rules(db_session, make_user):
    make_user("a")
    make_user("b")

    with pytest.raises(ValidationFailed, match="Cannot follow yourself"):
        follow_user(db_session, "a", "a")

    follow_user(db_session, "a", "b")
    db_session.commit()
    with pytest.raises(ConflictError, match="Already following"):
        follow_user(db_session, "a", "b")
