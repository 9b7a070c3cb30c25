import base64
from datetime import datetime, timedelta

import playlog.middleware.rate_limit as rate_limit
from playlog.main import app
from playlog.services.igdb import CatalogError
from playlog.services.media import LocalMediaStore, get_media_store

WITCHER = {
    "id": 1942,
    "name": "The Witcher 3: Wild Hunt",
    "summary": "Monster hunting.",
    "genres": [{"name": "Role-playing (RPG)"}],
    "first_release_date": 1431993600,
    "rating": 93.4,
}
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG-bytes").decode("ascii")


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_and_list_games(client, auth_headers):
    created = client.post(
        "/api/games",
        json={"title": "Chrono Trigger", "genre": "RPG", "release_date": "1995-03-11T00:00:00"},
        headers=auth_headers(),
    )
    assert created.status_code == 201
    assert created.json()["is_retro"] is True

    assert client.post("/api/games", json={"title": "Nope"}).status_code == 401
    assert [g["title"] for g in client.get("/api/games").json()] == ["Chrono Trigger"]
    assert [g["title"] for g in client.get("/api/games/retro").json()] == ["Chrono Trigger"]
    assert [g["title"] for g in client.get("/api/games/category/RPG").json()] == ["Chrono Trigger"]


def test_game_detail_with_and_without_caller(client, auth_headers, make_game):
    headers = auth_headers("u1")
    game = make_game("Celeste")
    client.post("/api/library", json={"game_id": game.id, "status": "completed", "rating": 5}, headers=headers)
    client.post("/api/reviews", json={"game_id": game.id, "rating": 4}, headers=headers)

    anonymous = client.get(f"/api/games/{game.id}").json()
    assert anonymous["user_game"] is None
    assert anonymous["review_count"] == 1
    assert anonymous["average_rating"] == 4.0

    mine = client.get(f"/api/games/{game.id}", headers=headers).json()
    assert mine["user_game"]["status"] == "completed"
    assert mine["user_game"]["completed_at"] is not None


def test_unknown_game_is_not_found(client):
    response = client.get("/api/games/9999")

    assert response.status_code == 404
    assert response.json() == {"message": "Game not found"}


def test_search_requires_query(client, make_game):
    make_game("Zelda")

    missing = client.get("/api/games/search")
    assert missing.status_code == 400
    assert missing.json() == {"message": "Search query is required"}
    assert [g["title"] for g in client.get("/api/games/search", params={"q": "zel"}).json()] == ["Zelda"]


def test_ranking_routes(client, auth_headers, make_game):
    popular, niche = make_game("Popular"), make_game("Niche")
    make_game("Fresh", release_date=datetime.utcnow() - timedelta(days=10))
    for user in ("a", "b"):
        client.post("/api/library", json={"game_id": popular.id, "status": "want_to_play"}, headers=auth_headers(user))
    client.post("/api/reviews", json={"game_id": niche.id, "rating": 5}, headers=auth_headers("a"))

    assert client.get("/api/games/trending", params={"limit": 1}).json()[0]["id"] == popular.id
    assert [g["id"] for g in client.get("/api/games/top-rated").json()] == [niche.id]
    assert [g["title"] for g in client.get("/api/games/new-releases").json()] == ["Fresh"]


def test_limit_is_clamped(client, make_game):
    for index in range(3):
        make_game(f"G{index}")

    assert len(client.get("/api/games/trending", params={"limit": 0}).json()) == 1
    assert len(client.get("/api/games", params={"limit": 500}).json()) == 3


def test_upload_media_creates_a_media_post(client, auth_headers, make_game):
    game = make_game()

    response = client.post(
        f"/api/games/{game.id}/upload-media",
        json={"image_data": PNG_DATA_URL, "file_name": "boss.png"},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Media uploaded successfully"
    assert body["image_url"] == PNG_DATA_URL
    assert body["post"]["post_type"] == "media"
    assert body["post"]["content"] == "Uploaded boss.png"
    assert body["post"]["image_urls"] == [PNG_DATA_URL]


def test_upload_media_to_local_store_is_served_back(client, auth_headers, make_game, tmp_path):
    app.dependency_overrides[get_media_store] = lambda: LocalMediaStore(tmp_path)
    game = make_game()

    uploaded = client.post(
        f"/api/games/{game.id}/upload-media",
        json={"image_data": PNG_DATA_URL},
        headers=auth_headers(),
    ).json()

    assert uploaded["post"]["content"] == "Uploaded screenshot"
    served = client.get(uploaded["image_url"])
    assert served.status_code == 200
    assert served.content == b"\x89PNG-bytes"
    assert client.get("/api/media/" + "0" * 64 + ".png").status_code == 404


def test_upload_media_limits(client, auth_headers, make_game):
    app.dependency_overrides[get_media_store] = lambda: LocalMediaStore(max_bytes=4)
    game = make_game()

    too_big = client.post(
        f"/api/games/{game.id}/upload-media",
        json={"image_data": PNG_DATA_URL},
        headers=auth_headers(),
    )
    assert too_big.status_code == 400
    assert too_big.json()["message"].startswith("File size exceeds")

    missing_game = client.post(
        "/api/games/9999/upload-media", json={"image_data": PNG_DATA_URL}, headers=auth_headers()
    )
    assert missing_game.status_code == 404


def test_search_igdb(client, fake_catalog):
    fake_catalog.search_results["witcher"] = [
        {"id": 1942, "name": "The Witcher 3", "cover": None, "first_release_date": None, "rating": 93.4}
    ]

    missing = client.get("/api/games/search-igdb")
    assert missing.status_code == 400
    assert missing.json() == {"message": "Query parameter 'q' is required"}
    results = client.get("/api/games/search-igdb", params={"q": "witcher"}).json()
    assert [r["id"] for r in results] == [1942]


def test_from_igdb_is_idempotent_at_the_route(client, auth_headers, fake_catalog):
    fake_catalog.details[1942] = WITCHER
    headers = auth_headers()

    first = client.post("/api/games/from-igdb", json={"igdb_id": 1942}, headers=headers)
    second = client.post("/api/games/from-igdb", json={"igdb_id": 1942}, headers=headers)

    assert first.status_code == 200
    assert first.json()["igdb_rating"] == 4.65
    assert second.json()["id"] == first.json()["id"]
    assert fake_catalog.calls.count(("details", 1942)) == 1
    assert len(client.get("/api/games").json()) == 1


def test_from_igdb_unknown_id(client, auth_headers):
    response = client.post("/api/games/from-igdb", json={"igdb_id": 5}, headers=auth_headers())

    assert response.status_code == 404
    assert response.json() == {"message": "Game with IGDB ID 5 not found"}


def test_catalog_failure_surfaces_status_text(client, fake_catalog):
    fake_catalog.search_games = _raise(CatalogError("IGDB API error: Service Unavailable", 503))

    response = client.get("/api/games/search-igdb", params={"q": "zelda"})

    assert response.status_code == 500
    assert response.json() == {"message": "Catalog request failed: IGDB API error: Service Unavailable"}


def test_unexpected_errors_are_generic(client, auth_headers, fake_catalog):
    fake_catalog.details[77] = RuntimeError("database password is hunter2")

    response = client.post("/api/games/from-igdb", json={"igdb_id": 77}, headers=auth_headers())

    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}


def test_bridge_lists_are_cached(client, fake_catalog):
    fake_catalog.lists["trending"] = [{"id": 1, "name": "Hot", "cover": None}]

    first = client.get("/api/games/igdb/trending").json()
    second = client.get("/api/games/igdb/trending").json()

    assert first == second
    assert first[0]["name"] == "Hot"
    assert fake_catalog.calls.count(("trending", 20)) == 1
    client.get("/api/games/igdb/genre/Shooter", params={"limit": 5})
    assert ("genre", "Shooter", 5) in fake_catalog.calls


def test_refresh_and_sync_routes(client, auth_headers, fake_catalog, make_game):
    headers = auth_headers()
    game = make_game("Witcher", igdb_id=1942)
    fake_catalog.details[1942] = WITCHER
    fake_catalog.search_results["Hades"] = [{"id": 2}]
    fake_catalog.details[2] = {"id": 2, "name": "Hades"}

    refreshed = client.post(f"/api/games/{game.id}/refresh-igdb", headers=headers).json()
    assert refreshed["title"] == "Witcher"
    assert refreshed["genre"] == "Role-playing (RPG)"

    summary = client.post(
        "/api/admin/sync-igdb", json={"titles": ["Witcher", "Hades", "Unknown"]}, headers=headers
    ).json()
    assert summary == {"added": ["Hades"], "skipped": ["Witcher"], "missing": ["Unknown"], "failed": []}


def test_rate_limit_returns_429(client, monkeypatch):
    monkeypatch.setattr(rate_limit, "RATE_LIMIT_DEFAULT_PER_MINUTE", 2)

    assert client.get("/health").status_code == 200
    assert client.get("/health").status_code == 200
    limited = client.get("/health")

    assert limited.status_code == 429
    assert limited.json() == {"message": "Too many requests"}
    assert limited.headers["Retry-After"] == "60"
    assert client.options("/health").status_code != 429


def _raise(exc):
    def raiser(*args, **kwargs):
        raise exc

    return raiser
