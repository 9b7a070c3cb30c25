import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.cache import cache_client
from ..core.config import IGDB_CACHE_TTL_SECONDS
from ..db import get_db
from ..models import User
from ..schemas import (
    CatalogSearchResultOut,
    CatalogSyncIn,
    CatalogSyncOut,
    FromCatalogIn,
    GameOut,
)
from ..services import catalog_sync
from ..services.games import get_game, get_game_by_igdb_id
from ..services.igdb import CatalogClient, get_catalog_client
from .deps import get_current_user, normalize_limit

logger = logging.getLogger(__name__)

router = APIRouter()


def _cached(key: str, loader):
    cached = cache_client.get_json(key)
    if cached is not None:
        return cached
    results = loader()
    cache_client.set_json(key, results, ttl=IGDB_CACHE_TTL_SECONDS)
    return results


@router.get("/games/search-igdb", response_model=List[CatalogSearchResultOut])
def search_igdb(
    q: Optional[str] = None,
    limit: int = 20,
    client: CatalogClient = Depends(get_catalog_client),
):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    return catalog_sync.search_igdb_games(client, q.strip(), normalize_limit(limit, 50))


@router.post("/games/from-igdb", response_model=GameOut)
def create_from_igdb(
    payload: FromCatalogIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: CatalogClient = Depends(get_catalog_client),
):
    existing = get_game_by_igdb_id(db, payload.igdb_id)
    if existing:
        return existing
    game = catalog_sync.create_game_from_igdb(db, client, payload.igdb_id)
    db.commit()
    db.refresh(game)
    return game


@router.get("/games/igdb/trending", response_model=List[CatalogSearchResultOut])
def igdb_trending(limit: int = 20, client: CatalogClient = Depends(get_catalog_client)):
    limit = normalize_limit(limit, 50)
    return _cached(f"igdb:trending:{limit}", lambda: client.get_trending_games(limit))


@router.get("/games/igdb/top-rated", response_model=List[CatalogSearchResultOut])
def igdb_top_rated(limit: int = 20, client: CatalogClient = Depends(get_catalog_client)):
    limit = normalize_limit(limit, 50)
    return _cached(f"igdb:top-rated:{limit}", lambda: client.get_top_rated_games(limit))


@router.get("/games/igdb/new-releases", response_model=List[CatalogSearchResultOut])
def igdb_new_releases(limit: int = 20, client: CatalogClient = Depends(get_catalog_client)):
    limit = normalize_limit(limit, 50)
    return _cached(f"igdb:new-releases:{limit}", lambda: client.get_new_releases(limit))


@router.get("/games/igdb/genre/{genre_name}", response_model=List[CatalogSearchResultOut])
def igdb_by_genre(
    genre_name: str,
    limit: int = 20,
    client: CatalogClient = Depends(get_catalog_client),
):
    limit = normalize_limit(limit, 50)
    key = f"igdb:genre:{genre_name.lower()}:{limit}"
    return _cached(key, lambda: client.get_games_by_genre(genre_name, limit))


@router.post("/games/{game_id}/refresh-igdb", response_model=GameOut)
def refresh_from_igdb(
    game_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: CatalogClient = Depends(get_catalog_client),
):
    game = get_game(db, game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    catalog_sync.refresh_game_from_igdb(db, client, game)
    db.commit()
    db.refresh(game)
    return game


@router.post("/admin/sync-igdb", response_model=CatalogSyncOut)
def sync_from_igdb(
    payload: CatalogSyncIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: CatalogClient = Depends(get_catalog_client),
):
    summary = catalog_sync.sync_games_from_igdb(db, client, payload.titles, payload.alternates)
    logger.info(
        "Catalog sync by %s: %s added, %s skipped, %s missing, %s failed",
        current_user.id,
        len(summary["added"]),
        len(summary["skipped"]),
        len(summary["missing"]),
        len(summary["failed"]),
    )
    return summary
