from __future__ import annotations

import base64
import binascii
import hashlib
import re
from pathlib import Path
from typing import Optional, Protocol

from ..core.config import MEDIA_MAX_BYTES, MEDIA_STORAGE_DIR, MEDIA_STORAGE_MODE
from ..core.errors import ValidationFailed

_DATA_URL_RE = re.compile(r"^data:image/(?P<ext>[a-z0-9.+-]+);base64,", re.IGNORECASE)
_MEDIA_NAME_RE = re.compile(r"^[0-9a-f]{64}\.[a-z0-9]+$")
_EXTENSION_ALIASES = {"jpeg": "jpg", "svg+xml": "svg"}


class MediaTooLargeError(ValidationFailed):
    pass


def _limit_label(max_bytes: int) -> str:
    return f"{max_bytes // (1024 * 1024)}MB"


def decode_image_data(image_data: str, max_bytes: int = MEDIA_MAX_BYTES) -> tuple[bytes, str]:
    match = _DATA_URL_RE.match(image_data)
    extension = match.group("ext").lower() if match else "png"
    payload = image_data[match.end():] if match else image_data
    # Reject by encoded length before decoding anything large.
    if len(payload) * 3 // 4 > max_bytes + 3:
        raise MediaTooLargeError(f"File size exceeds {_limit_label(max_bytes)} limit")
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationFailed("Image data is not valid base64") from exc
    if len(raw) > max_bytes:
        raise MediaTooLargeError(f"File size exceeds {_limit_label(max_bytes)} limit")
    return raw, _EXTENSION_ALIASES.get(extension, extension)


class MediaStore(Protocol):
    def save(self, image_data: str, file_name: Optional[str] = None) -> str: ...


class InlineMediaStore:
    """Keeps the upload as its data URL; nothing is written anywhere."""

    def __init__(self, max_bytes: int = MEDIA_MAX_BYTES):
        self.max_bytes = max_bytes

    def save(self, image_data: str, file_name: Optional[str] = None) -> str:
        decode_image_data(image_data, self.max_bytes)
        return image_data


class LocalMediaStore:
    """Content-addressed files under a directory, named by SHA-256 digest."""

    def __init__(self, root: str | Path = MEDIA_STORAGE_DIR, max_bytes: int = MEDIA_MAX_BYTES):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def save(self, image_data: str, file_name: Optional[str] = None) -> str:
        raw, extension = decode_image_data(image_data, self.max_bytes)
        name = f"{hashlib.sha256(raw).hexdigest()}.{extension}"
        target = self.root / name
        if not target.exists():
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(raw)
        return f"/api/media/{name}"

    def resolve(self, name: str) -> Optional[Path]:
        if not _MEDIA_NAME_RE.match(name):
            return None
        path = self.root / name
        return path if path.is_file() else None


def get_media_store() -> MediaStore:
    if MEDIA_STORAGE_MODE == "local":
        return LocalMediaStore()
    return InlineMediaStore()
