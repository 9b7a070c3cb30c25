import os
from pathlib import Path


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            key = key.strip()
            if not key or key in os.environ:
                continue
            cleaned = value.strip().strip('"').strip("'")
            os.environ[key] = cleaned
    except OSError:
        return


def _load_env() -> None:
    current = Path(__file__).resolve()
    for candidate in (current.parents[2] / ".env", Path.cwd() / ".env"):
        _load_env_file(candidate)


_load_env()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _default_database_url() -> str:
    project_root = Path(__file__).resolve().parents[2]
    return f"sqlite:///{(project_root / 'playlog.db').as_posix()}"


def _normalize_cors(origins: str) -> list[str]:
    items: list[str] = []
    for raw in origins.split(","):
        value = raw.strip()
        if value and value not in items:
            items.append(value)
    return items


DATABASE_URL = os.getenv("DATABASE_URL", _default_database_url())
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-prod")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

_DEFAULT_CORS_ORIGINS = (
    "http://localhost:5000,http://localhost:5173,"
    "http://127.0.0.1:5000,http://127.0.0.1:5173"
)
CORS_ORIGINS = _normalize_cors(os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS))

TWITCH_CLIENT_ID = os.getenv("TWITCH_CLIENT_ID", "")
TWITCH_CLIENT_SECRET = os.getenv("TWITCH_CLIENT_SECRET", "")
TWITCH_TOKEN_URL = os.getenv("TWITCH_TOKEN_URL", "https://id.twitch.tv/oauth2/token")
IGDB_API_URL = os.getenv("IGDB_API_URL", "https://api.igdb.com/v4")
IGDB_REQUEST_TIMEOUT_SECONDS = float(os.getenv("IGDB_REQUEST_TIMEOUT_SECONDS", "15"))
IGDB_TOKEN_SAFETY_MARGIN_SECONDS = int(os.getenv("IGDB_TOKEN_SAFETY_MARGIN_SECONDS", "60"))
IGDB_CACHE_TTL_SECONDS = int(os.getenv("IGDB_CACHE_TTL_SECONDS", "600"))
IGDB_SYNC_DELAY_SECONDS = float(os.getenv("IGDB_SYNC_DELAY_SECONDS", "0.2"))

MEDIA_STORAGE_MODE = os.getenv("MEDIA_STORAGE_MODE", "inline").strip().lower() or "inline"
MEDIA_STORAGE_DIR = os.getenv("MEDIA_STORAGE_DIR", "storage/media")
MEDIA_MAX_BYTES = int(os.getenv("MEDIA_MAX_BYTES", str(10 * 1024 * 1024)))

RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
RATE_LIMIT_DEFAULT_PER_MINUTE = int(os.getenv("RATE_LIMIT_DEFAULT_PER_MINUTE", "240"))
RATE_LIMIT_CATALOG_PER_MINUTE = int(os.getenv("RATE_LIMIT_CATALOG_PER_MINUTE", "30"))

REDIS_URL = os.getenv("REDIS_URL", "")
CACHE_SWEEP_INTERVAL = int(os.getenv("CACHE_SWEEP_INTERVAL", "1000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
