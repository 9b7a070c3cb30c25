import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["MEDIA_STORAGE_MODE"] = "inline"
os.environ["IGDB_SYNC_DELAY_SECONDS"] = "0"
os.environ["REDIS_URL"] = ""

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from playlog.core.cache import cache_client  # noqa: E402
from playlog.core.config import ALGORITHM, SECRET_KEY  # noqa: E402
from playlog.db import enable_sqlite_foreign_keys, get_db, init_db  # noqa: E402
from playlog.main import app  # noqa: E402
from playlog.models import Game, User  # noqa: E402
from playlog.services.igdb import get_catalog_client  # noqa: E402


class FakeCatalog:
    """In-memory stand-in for the IGDB client."""

    def __init__(self):
        self.details = {}
        self.search_results = {}
        self.lists = {"trending": [], "top_rated": [], "new_releases": [], "genre": []}
        self.calls = []

    def search_games(self, query, limit=20):
        self.calls.append(("search", query, limit))
        return list(self.search_results.get(query, []))[:limit]

    def get_game_details(self, igdb_id):
        self.calls.append(("details", igdb_id))
        found = self.details.get(igdb_id)
        if isinstance(found, Exception):
            raise found
        return found

    def get_trending_games(self, limit=20):
        self.calls.append(("trending", limit))
        return self.lists["trending"][:limit]

    def get_top_rated_games(self, limit=20):
        self.calls.append(("top_rated", limit))
        return self.lists["top_rated"][:limit]

    def get_new_releases(self, limit=20):
        self.calls.append(("new_releases", limit))
        return self.lists["new_releases"][:limit]

    def get_games_by_genre(self, genre_name, limit=20):
        self.calls.append(("genre", genre_name, limit))
        return self.lists["genre"][:limit]


@pytest.fixture()
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fake_catalog():
    return FakeCatalog()


@pytest.fixture()
def client(session_factory, fake_catalog):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog_client] = lambda: fake_catalog
    cache_client.clear()
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
        cache_client.clear()


def make_token(user_id: str, **claims) -> str:
    payload = {"sub": user_id, "email": f"{user_id}@example.com", **claims}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


@pytest.fixture()
def auth_headers():
    def build(user_id: str = "user-1", **claims):
        return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}

    return build


@pytest.fixture()
def make_user(db_session):
    def create(user_id: str = "user-1", **fields):
        user = User(id=user_id, email=f"{user_id}@example.com", **fields)
        db_session.add(user)
        db_session.commit()
        return user

    return create


@pytest.fixture()
def make_game(db_session):
    def create(title: str = "Celeste", **fields):
        fields.setdefault("genre", "Platformer")
        game = Game(title=title, **fields)
        db_session.add(game)
        db_session.commit()
        return game

    return create


@pytest.fixture()
def fixed_now():
    return datetime(2024, 6, 15, 12, 0, 0)
