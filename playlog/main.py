import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.cache import cache_client
from .core.config import CORS_ORIGINS, LOG_LEVEL
from .core.errors import PlaylogError
from .db import init_db
from .middleware import RateLimitMiddleware
from .routes import (
    activities,
    auth,
    catalog,
    favorites,
    games,
    library,
    media,
    posts,
    reviews,
    users,
)
from .services.igdb import CatalogError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Playlog API", version=__version__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ())]
    if len(loc) > 1 and loc[0] in ("body", "query", "path", "header"):
        loc = loc[1:]
    field = ".".join(loc)
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(400, _describe_validation_error(exc))


@app.exception_handler(PlaylogError)
async def playlog_exception_handler(request: Request, exc: PlaylogError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError):
    logger.warning("Catalog failure on %s %s: %s", request.method, request.url.path, exc.status_text)
    return _error(500, f"Catalog request failed: {exc.status_text}")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# Middleware runs in reverse order of addition.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    cache_client.connect()


@app.on_event("shutdown")
def on_shutdown() -> None:
    cache_client.disconnect()


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def health_check_head():
    return Response(status_code=200)


# Catalog bridge paths must be matched before /games/{game_id}.
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(catalog.router, prefix="/api", tags=["catalog"])
app.include_router(games.router, prefix="/api/games", tags=["games"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(library.router, prefix="/api/library", tags=["library"])
app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(activities.router, prefix="/api/activities", tags=["activities"])
app.include_router(posts.router, prefix="/api/posts", tags=["posts"])
app.include_router(posts.comments_router, prefix="/api/comments", tags=["posts"])
app.include_router(favorites.router, prefix="/api/favorites", tags=["favorites"])
app.include_router(media.router, prefix="/api/media", tags=["media"])
