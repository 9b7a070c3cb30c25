from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..core.cache import cache_client
from ..core.config import (
    CORS_ORIGINS,
    RATE_LIMIT_CATALOG_PER_MINUTE,
    RATE_LIMIT_DEFAULT_PER_MINUTE,
    RATE_LIMIT_ENABLED,
)

_CATALOG_PATHS = (
    "/api/games/search-igdb",
    "/api/games/from-igdb",
    "/api/games/igdb/",
    "/api/admin/sync-igdb",
)


def _is_catalog_request(path: str) -> bool:
    if any(path.startswith(prefix) for prefix in _CATALOG_PATHS):
        return True
    return path.startswith("/api/games/") and path.endswith("/refresh-igdb")


def _resolve_limit(path: str) -> int:
    if _is_catalog_request(path):
        return RATE_LIMIT_CATALOG_PER_MINUTE
    return RATE_LIMIT_DEFAULT_PER_MINUTE


def _add_cors_headers(response: JSONResponse, request: Request) -> JSONResponse:
    origin = request.headers.get("origin", "")
    if origin in CORS_ORIGINS or "*" in CORS_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"
    return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Preflight requests are never limited.
        if not RATE_LIMIT_ENABLED or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

        allowed = cache_client.check_rate_limit(
            f"{client_ip}:{method}:{path}",
            _resolve_limit(path),
            window_seconds=60,
        )
        if not allowed:
            response = JSONResponse(
                status_code=429,
                content={"message": "Too many requests"},
            )
            response.headers["Retry-After"] = "60"
            return _add_cors_headers(response, request)

        return await call_next(request)
