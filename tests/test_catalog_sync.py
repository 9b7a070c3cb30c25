from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from playlog.core.errors import NotFoundError
from playlog.models import Game
from playlog.services.catalog_sync import (
    catalog_rating_to_stars,
    create_game_from_igdb,
    map_catalog_game,
    refresh_game_from_igdb,
    sync_games_from_igdb,
)

WITCHER = {
    "id": 1942,
    "name": "The Witcher 3: Wild Hunt",
    "summary": "<b>Geralt</b> &amp; friends",
    "cover": {"url": "https://images.igdb.com/igdb/image/upload/t_cover_big/co1wyy.jpg"},
    "screenshots": [
        {"url": "https://images.igdb.com/igdb/image/upload/t_screenshot_big/sc1.jpg"},
    ],
    "genres": [{"name": "Role-playing (RPG)"}, {"name": "Adventure"}],
    "platforms": [{"name": "PC (Microsoft Windows)"}, {"name": "PlayStation 4"}],
    "involved_companies": [
        {"company": {"name": "CD Projekt"}, "developer": False, "publisher": True},
        {"company": {"name": "CD Projekt RED"}, "developer": True, "publisher": False},
    ],
    "first_release_date": 1431993600,
    "rating": 93.4,
}


def test_map_catalog_game_fields():
    mapped = map_catalog_game(WITCHER, now=datetime(2024, 1, 1))

    assert mapped["igdb_id"] == 1942
    assert mapped["title"] == "The Witcher 3: Wild Hunt"
    assert mapped["description"] == "Geralt & friends"
    assert mapped["genre"] == "Role-playing (RPG)"
    assert mapped["platform"] == "PC (Microsoft Windows), PlayStation 4"
    assert mapped["developer"] == "CD Projekt RED"
    assert mapped["publisher"] == "CD Projekt"
    assert mapped["release_date"] == datetime(2015, 5, 19)
    assert mapped["igdb_rating"] == 4.65
    assert mapped["screenshot_urls"] == [WITCHER["screenshots"][0]["url"]]
    assert mapped["is_retro"] is False


def test_map_catalog_game_marks_old_releases_retro():
    details = {"id": 7, "name": "Half-Life", "first_release_date": 911433600}

    mapped = map_catalog_game(details, now=datetime(2024, 1, 1))

    assert mapped["is_retro"] is True
    assert mapped["developer"] is None
    assert mapped["igdb_rating"] is None


def test_rating_scale():
    assert catalog_rating_to_stars(100) == 5.0
    assert catalog_rating_to_stars(80.2) == 4.0
    assert catalog_rating_to_stars(None) is None


def test_create_game_from_igdb_twice_hits_unique_constraint(db_session, fake_catalog):
    fake_catalog.details[1942] = WITCHER

    game = create_game_from_igdb(db_session, fake_catalog, 1942)
    assert game.id is not None

    with pytest.raises(IntegrityError):
        create_game_from_igdb(db_session, fake_catalog, 1942)
    db_session.rollback()


def test_create_game_from_igdb_unknown_id(db_session, fake_catalog):
    with pytest.raises(NotFoundError):
        create_game_from_igdb(db_session, fake_catalog, 99)


def test_refresh_keeps_local_title(db_session, fake_catalog, make_game):
    game = make_game("Witcher 3 (local)", igdb_id=1942)
    fake_catalog.details[1942] = WITCHER

    refresh_game_from_igdb(db_session, fake_catalog, game)
    db_session.commit()

    assert game.title == "Witcher 3 (local)"
    assert game.developer == "CD Projekt RED"
    assert game.igdb_rating == 4.65


def test_refresh_without_catalog_id_searches_by_title(db_session, fake_catalog, make_game):
    game = make_game("The Witcher 3")
    fake_catalog.search_results["The Witcher 3"] = [{"id": 1942, "name": "The Witcher 3"}]
    fake_catalog.details[1942] = WITCHER

    refresh_game_from_igdb(db_session, fake_catalog, game)

    assert game.igdb_id == 1942


def test_sync_reports_every_title(db_session, fake_catalog, make_game):
    make_game("Halo")
    fake_catalog.search_results = {
        "Zelda": [{"id": 1}],
        "Super Mario": [{"id": 2}],
        "Boom": [{"id": 3}],
    }
    fake_catalog.details = {
        1: {"id": 1, "name": "The Legend of Zelda"},
        2: {"id": 2, "name": "Super Mario Bros."},
        3: RuntimeError("upstream exploded"),
    }

    summary = sync_games_from_igdb(
        db_session,
        fake_catalog,
        ["Halo", "Zelda", "Mario", "Nothing", "Boom"],
        alternates={"Mario": ["Super Mario"]},
        delay_seconds=0,
    )

    assert summary == {
        "added": ["Zelda", "Mario"],
        "skipped": ["Halo"],
        "missing": ["Nothing"],
        "failed": ["Boom"],
    }
    titles = {title for (title,) in db_session.query(Game.title).all()}
    assert titles == {"Halo", "The Legend of Zelda", "Super Mario Bros."}
