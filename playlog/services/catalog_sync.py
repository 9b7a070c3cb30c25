"""Materialize catalog entries from the external game database into local rows."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import IGDB_SYNC_DELAY_SECONDS
from ..core.errors import NotFoundError
from ..core.text import strip_markup
from ..models import Game
from .games import get_game_by_igdb_id, is_retro_release
from .igdb import CatalogClient

logger = logging.getLogger(__name__)


def _first_company(details: Dict[str, Any], role: str) -> Optional[str]:
    for involvement in details.get("involved_companies") or []:
        if involvement.get(role):
            company = involvement.get("company") or {}
            if company.get("name"):
                return company["name"]
    return None


def catalog_rating_to_stars(rating: Optional[float]) -> Optional[float]:
    """Catalog ratings run 0-100; stars run 0-5."""
    if not rating:
        return None
    return round(rating) / 20


def map_catalog_game(details: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    released = details.get("first_release_date")
    release_date = (
        datetime.fromtimestamp(released, tz=timezone.utc).replace(tzinfo=None) if released else None
    )
    cover = details.get("cover") or {}
    screenshots = [shot["url"] for shot in details.get("screenshots") or [] if shot.get("url")]
    genres = details.get("genres") or []
    platforms = [p["name"] for p in details.get("platforms") or [] if p.get("name")]
    return {
        "igdb_id": details["id"],
        "title": details.get("name") or "",
        "description": strip_markup(details.get("summary")) or None,
        "cover_image_url": cover.get("url") or None,
        "screenshot_urls": screenshots or None,
        "genre": genres[0].get("name") if genres else None,
        "platform": ", ".join(platforms) or None,
        "developer": _first_company(details, "developer"),
        "publisher": _first_company(details, "publisher"),
        "release_date": release_date,
        "igdb_rating": catalog_rating_to_stars(details.get("rating")),
        "is_retro": is_retro_release(release_date, now),
    }


def search_igdb_games(client: CatalogClient, query: str, limit: int = 20) -> List[Dict[str, Any]]:
    return client.search_games(query, limit)


def create_game_from_igdb(db: Session, client: CatalogClient, igdb_id: int) -> Game:
    """Insert a new Game row from catalog details.

    Callers check ``get_game_by_igdb_id`` first; a second insert for the same
    catalog id fails on the unique ``igdb_id`` column.
    """
    details = client.get_game_details(igdb_id)
    if not details:
        raise NotFoundError(f"Game with IGDB ID {igdb_id} not found")
    game = Game(**map_catalog_game(details))
    db.add(game)
    db.flush()
    return game


def refresh_game_from_igdb(db: Session, client: CatalogClient, game: Game) -> Game:
    if game.igdb_id:
        details = client.get_game_details(game.igdb_id)
    else:
        hits = client.search_games(game.title, 1)
        details = client.get_game_details(hits[0]["id"]) if hits else None
    if not details:
        raise NotFoundError(f"No catalog data found for {game.title}")
    mapped = map_catalog_game(details)
    # Keep the local title and retro flag; everything else follows the catalog.
    mapped.pop("title")
    mapped.pop("is_retro")
    owner = get_game_by_igdb_id(db, mapped["igdb_id"])
    if owner is not None and owner.id != game.id:
        mapped.pop("igdb_id")
    for field, value in mapped.items():
        setattr(game, field, value)
    db.flush()
    return game


def _find_details(client: CatalogClient, terms: Iterable[str]) -> Optional[Dict[str, Any]]:
    for term in terms:
        hits = client.search_games(term, 5)
        if hits:
            return client.get_game_details(hits[0]["id"])
    return None


def sync_games_from_igdb(
    db: Session,
    client: CatalogClient,
    titles: Iterable[str],
    alternates: Optional[Dict[str, List[str]]] = None,
    delay_seconds: float = IGDB_SYNC_DELAY_SECONDS,
) -> Dict[str, List[str]]:
    alternates = alternates or {}
    summary: Dict[str, List[str]] = {"added": [], "skipped": [], "missing": [], "failed": []}
    for title in titles:
        try:
            if db.query(Game.id).filter(Game.title == title).first() is not None:
                logger.info("Game %s already exists, skipping", title)
                summary["skipped"].append(title)
                continue
            details = _find_details(client, [title, *alternates.get(title, [])])
            if not details:
                logger.info("No catalog data for %s", title)
                summary["missing"].append(title)
                continue
            if get_game_by_igdb_id(db, details["id"]) is not None:
                summary["skipped"].append(title)
                continue
            db.add(Game(**map_catalog_game(details)))
            db.commit()
            logger.info("Added game %s", details.get("name") or title)
            summary["added"].append(title)
        except Exception:
            db.rollback()
            logger.exception("Failed to add game %s", title)
            summary["failed"].append(title)
        if delay_seconds > 0:
            time.sleep(delay_seconds)
    return summary
