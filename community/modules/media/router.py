from fastapi import APIRouter, Depends

from community.core.storage import R2Storage, get_storage
from community.modules.media.service import MediaService

router = APIRouter()

def get_media_service(storage: R2Storage = Depends(get_storage)) -> MediaService:
    return MediaService(storage)

@router.get("/{path:path}")
def serve_media(path: str, media_service: MediaService = Depends(get_media_service)):
    return media_service.get_media(path)
