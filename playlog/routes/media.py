from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from ..services.media import LocalMediaStore, MediaStore, get_media_store

router = APIRouter()


@router.get("/{name}")
def get_media(name: str, media_store: MediaStore = Depends(get_media_store)):
    if not isinstance(media_store, LocalMediaStore):
        raise HTTPException(status_code=404, detail="Media not found")
    path = media_store.resolve(name)
    if path is None:
        raise HTTPException(status_code=404, detail="Media not found")
    return FileResponse(path, headers={"Cache-Control": "public, max-age=31536000, immutable"})
