import logging
import mimetypes

from fastapi import HTTPException
from starlette.responses import Response

from community.core.storage import R2Storage

logger = logging.getLogger(__name__)

class MediaService:
    def __init__(self, storage: R2Storage):
        self.storage = storage

    def get_media(self, path: str) -> Response:
        """Serve an uploaded post image or document by its object key"""
        found = self.storage.read(path)
        if found is None:
            logger.info(f"Media file {path} not found")
            raise HTTPException(status_code=404, detail="File not found")

        content, content_type = found
        if not content_type:
            content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return Response(
            content=content,
            media_type=content_type,
            headers={
                "Cache-Control": "public, max-age=86400",
                "Content-Disposition": f"inline; filename={path.split('/')[-1]}",
            },
        )
