import os
import uuid
import boto3
import logging
from pathlib import Path
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from community.core.config import settings
from community.core.exceptions import WriteError

logger = logging.getLogger(__name__)

# Upload kinds and the folder each one lands in
ASSET_FOLDERS = {
    "image": "images",
    "document": "documents",
}

class R2Storage:
    """Handles post media storage using Cloudflare R2, with a local-disk fallback"""

    def __init__(
        self,
        bucket: Optional[str] = None,
        public_url: Optional[str] = None,
        base_url: Optional[str] = None,
        local_root: Optional[str] = None,
        client=None,
    ):
        """Initialize the R2 client with settings from config"""
        self.client = client
        self.bucket = bucket or settings.R2_BUCKET_NAME
        self.public_url = (settings.R2_PUBLIC_URL if public_url is None else public_url).rstrip("/")
        self.base_url = (settings.BASE_URL if base_url is None else base_url).rstrip("/")
        self.local_root = Path(local_root or settings.UPLOAD_DIRECTORY)

        if self.client is not None:
            return

        if all([settings.R2_ENDPOINT, settings.R2_ACCESS_KEY_ID, settings.R2_SECRET_ACCESS_KEY]):
            try:
                logger.info(f"Creating S3 client for R2 bucket '{self.bucket}'")
                self.client = boto3.client(
                    "s3",
                    endpoint_url=settings.R2_ENDPOINT,
                    aws_access_key_id=settings.R2_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
                )
            except (BotoCoreError, ValueError) as e:
                logger.error(f"Failed to create S3 client: {e}")
                logger.warning("R2 storage will not be available, using local storage")
        else:
            logger.warning(f"R2 storage not configured, saving uploads under '{self.local_root}'")

    @staticmethod
    def build_key(filename: Optional[str], kind: str) -> str:
        """Type-scoped key with a random name, e.g. ``images/3f2c...e1.png``"""
        if kind not in ASSET_FOLDERS:
            raise ValueError(f"Unknown asset kind: {kind}")
        file_extension = os.path.splitext(filename or "")[1].lower()
        return f"{ASSET_FOLDERS[kind]}/{uuid.uuid4().hex}{file_extension}"

    async def upload(self, file: UploadFile, kind: str) -> str:
        """Store ``file`` and return its object key"""
        key = self.build_key(file.filename, kind)
        content = await file.read()
        logger.info(f"[UPLOAD] '{file.filename}' ({len(content)} bytes) -> '{key}'")

        if self.client is None:
            local_path = self.local_root / key
            try:
                local_path.parent.mkdir(parents=True, exist_ok=True)
                local_path.write_bytes(content)
            except OSError as e:
                logger.error(f"[UPLOAD] Failed to save file locally: {e}")
                raise WriteError("Failed to upload media") from e
        else:
            try:
                self.client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=content,
                    ContentType=file.content_type or "application/octet-stream",
                )
            except (BotoCoreError, ClientError) as e:
                logger.error(f"[UPLOAD] Failed to upload to R2: {e}")
                raise WriteError("Failed to upload media") from e

        await file.seek(0)
        return key

    def get_public_url(self, key: str) -> str:
        """Public URL for an uploaded key; falls back to the API media proxy"""
        if self.client is not None and self.public_url:
            return f"{self.public_url}/{key}"
        return f"{self.base_url}{settings.API_V1_STR}/media/{key}"

    def read(self, key: str):
        """Return (content, content_type) for ``key`` or None when it does not exist"""
        if self.client is not None:
            try:
                obj = self.client.get_object(Bucket=self.bucket, Key=key)
                return obj["Body"].read(), obj.get("ContentType", "application/octet-stream")
            except (BotoCoreError, ClientError) as e:
                logger.warning(f"Failed to retrieve '{key}' from R2: {e}. Falling back to local storage.")

        local_path = (self.local_root / key).resolve()
        if self.local_root.resolve() not in local_path.parents or not local_path.is_file():
            return None
        return local_path.read_bytes(), None

# Global instance for app-wide usage
r2_storage = R2Storage()


def get_storage() -> R2Storage:
    return r2_storage
