from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

import requests

from ..core.config import (
    IGDB_API_URL,
    IGDB_REQUEST_TIMEOUT_SECONDS,
    IGDB_TOKEN_SAFETY_MARGIN_SECONDS,
    TWITCH_CLIENT_ID,
    TWITCH_CLIENT_SECRET,
    TWITCH_TOKEN_URL,
)

logger = logging.getLogger(__name__)

# Only main games (no DLC, bundles, expansions).
MAIN_GAME_CATEGORY = 0
SEARCH_FIELDS = "name, cover.url, first_release_date, rating"
DETAIL_FIELDS = (
    "name, summary, cover.url, screenshots.url, genres.name, platforms.name, "
    "involved_companies.company.name, involved_companies.developer, "
    "involved_companies.publisher, first_release_date, rating, rating_count, "
    "aggregated_rating, aggregated_rating_count"
)
_SECONDS_PER_DAY = 24 * 60 * 60


class CatalogError(Exception):
    """Raised when the catalog or its token endpoint answers with a non-success status."""

    def __init__(self, status_text: str, status_code: Optional[int] = None):
        super().__init__(status_text)
        self.status_text = status_text
        self.status_code = status_code


@dataclass
class AccessToken:
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.value) and now < self.expires_at


class CatalogClient(Protocol):
    def search_games(self, query: str, limit: int = 20) -> List[Dict[str, Any]]: ...

    def get_game_details(self, igdb_id: int) -> Optional[Dict[str, Any]]: ...

    def get_trending_games(self, limit: int = 20) -> List[Dict[str, Any]]: ...

    def get_top_rated_games(self, limit: int = 20) -> List[Dict[str, Any]]: ...

    def get_new_releases(self, limit: int = 20) -> List[Dict[str, Any]]: ...

    def get_games_by_genre(self, genre_name: str, limit: int = 20) -> List[Dict[str, Any]]: ...


def format_image_url(url: Optional[str], size: str = "cover_big") -> str:
    if not url:
        return ""
    resized = url.replace("t_thumb", f"t_{size}")
    if resized.startswith("//"):
        resized = f"https:{resized}"
    return resized


def _quote(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def _summarize(game: Dict[str, Any]) -> Dict[str, Any]:
    cover = game.get("cover") or {}
    return {
        "id": game.get("id"),
        "name": game.get("name") or "",
        "cover": {"url": format_image_url(cover.get("url"))} if cover.get("url") else None,
        "first_release_date": game.get("first_release_date"),
        "rating": game.get("rating"),
    }


class IGDBClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = TWITCH_TOKEN_URL,
        api_url: str = IGDB_API_URL,
        timeout: float = IGDB_REQUEST_TIMEOUT_SECONDS,
        safety_margin: int = IGDB_TOKEN_SAFETY_MARGIN_SECONDS,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.safety_margin = safety_margin
        self.session = session or requests.Session()
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._token_lock = threading.Lock()

    def get_access_token(self) -> str:
        token = self._token
        if token and token.is_valid(self._clock()):
            return token.value
        with self._token_lock:
            # Another caller may have refreshed while we waited.
            token = self._token
            if token and token.is_valid(self._clock()):
                return token.value
            self._token = self._exchange_token()
            return self._token.value

    def _exchange_token(self) -> AccessToken:
        issued_at = self._clock()
        try:
            response = self.session.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CatalogError(f"Failed to get access token: {exc}") from exc
        if not response.ok:
            logger.warning("Token exchange failed: %s %s", response.status_code, response.reason)
            raise CatalogError(
                f"Failed to get access token: {response.reason}", response.status_code
            )
        payload = response.json()
        expires_in = int(payload.get("expires_in") or 0)
        logger.info("Catalog access token refreshed (expires_in=%s)", expires_in)
        return AccessToken(
            value=payload["access_token"],
            expires_at=issued_at + expires_in - self.safety_margin,
        )

    def _query(self, endpoint: str, body: str) -> List[Dict[str, Any]]:
        token = self.get_access_token()
        try:
            response = self.session.post(
                f"{self.api_url}/{endpoint}",
                data=body.encode("utf-8"),
                headers={
                    "Client-ID": self.client_id,
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "text/plain",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CatalogError(f"IGDB API error: {exc}") from exc
        if not response.ok:
            logger.warning("IGDB %s failed: %s %s", endpoint, response.status_code, response.reason)
            raise CatalogError(f"IGDB API error: {response.reason}", response.status_code)
        results = response.json()
        return results if isinstance(results, list) else []

    def _list(self, where: str, sort: Optional[str], limit: int, fields: str = SEARCH_FIELDS):
        lines = [f"fields {fields};", f"where {where} & category = {MAIN_GAME_CATEGORY};"]
        if sort:
            lines.append(f"sort {sort};")
        lines.append(f"limit {int(limit)};")
        return [_summarize(game) for game in self._query("games", "\n".join(lines))]

    def search_games(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        body = "\n".join(
            [
                f'search "{_quote(query)}";',
                f"fields {SEARCH_FIELDS};",
                f"where rating_count > 5 & category = {MAIN_GAME_CATEGORY};",
                f"limit {int(limit)};",
            ]
        )
        return [_summarize(game) for game in self._query("games", body)]

    def get_game_details(self, igdb_id: int) -> Optional[Dict[str, Any]]:
        body = f"fields {DETAIL_FIELDS};\nwhere id = {int(igdb_id)};"
        results = self._query("games", body)
        if not results:
            return None
        game = dict(results[0])
        cover = game.get("cover")
        if cover and cover.get("url"):
            game["cover"] = {**cover, "url": format_image_url(cover["url"])}
        if game.get("screenshots"):
            game["screenshots"] = [
                {**shot, "url": format_image_url(shot.get("url"), "screenshot_big")}
                for shot in game["screenshots"]
            ]
        return game

    def get_trending_games(self, limit: int = 20) -> List[Dict[str, Any]]:
        return self._list("rating_count > 50 & rating > 70", "rating_count desc", limit)

    def get_top_rated_games(self, limit: int = 20) -> List[Dict[str, Any]]:
        return self._list("rating > 80 & rating_count > 100", "rating desc", limit)

    def get_new_releases(self, limit: int = 20) -> List[Dict[str, Any]]:
        one_year_ago = int(self._clock()) - 365 * _SECONDS_PER_DAY
        return self._list(
            f"first_release_date > {one_year_ago} & rating_count > 10",
            "first_release_date desc",
            limit,
        )

    def get_games_by_genre(self, genre_name: str, limit: int = 20) -> List[Dict[str, Any]]:
        return self._list(
            f'genres.name = "{_quote(genre_name)}" & rating_count > 10',
            "rating desc",
            limit,
        )


_client_lock = threading.Lock()
_client: Optional[IGDBClient] = None


def get_catalog_client() -> CatalogClient:
    global _client
    if _client is not None:
        return _client
    with _client_lock:
        if _client is None:
            _client = IGDBClient(TWITCH_CLIENT_ID, TWITCH_CLIENT_SECRET)
        return _client
