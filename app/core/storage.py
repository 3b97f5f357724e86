# app/core/storage.py

import os
import uuid
from typing import Optional

from fastapi import UploadFile
from loguru import logger
from supabase import create_client, Client

from app.core.config import settings
from app.core.errors import UpstreamError, ValidationFailed


class AttachmentStorage:
    """
    Project attachments in a Supabase storage bucket.
    Uploads return the object's public URI; deletes take that URI back.
    """

    def __init__(self, client: Optional[Client], bucket: str, max_size: int):
        self.client = client
        self.bucket = bucket
        self.max_size = max_size

    def _bucket(self):
        if not self.client:
            logger.error("Supabase credentials missing in settings.")
            raise UpstreamError("Storage service unavailable.")
        return self.client.storage.from_(self.bucket)

    async def upload(self, file: UploadFile, project_id: str) -> str:
        content = await file.read()
        if not content:
            raise ValidationFailed(f"{file.filename or 'File'} is empty.")
        if len(content) > self.max_size:
            raise ValidationFailed(f"File too large. Maximum size is {self.max_size // (1024 * 1024)}MB.")

        # Ignore the user's filename apart from its extension
        _, ext = os.path.splitext(file.filename or "")
        path = f"projects/{project_id}/{uuid.uuid4()}{ext.lower()}"

        bucket = self._bucket()
        try:
            bucket.upload(
                path=path,
                file=content,
                file_options={"content-type": file.content_type or "application/octet-stream", "upsert": "true"},
            )
            return bucket.get_public_url(path)
        except Exception as e:
            logger.error(f"Storage upload failed for {file.filename}: {e}")
            raise UpstreamError(f"Failed to upload {file.filename}") from e

    def path_from_url(self, url: str) -> Optional[str]:
        marker = f"/object/public/{self.bucket}/"
        if marker not in url:
            return None
        return url.split(marker, 1)[1].split("?", 1)[0]

    async def delete(self, url: str) -> None:
        path = self.path_from_url(url)
        if not path:
            raise ValidationFailed("Attachment URL does not belong to the attachments bucket.")

        bucket = self._bucket()
        try:
            bucket.remove([path])
        except Exception as e:
            logger.error(f"Storage delete failed for {path}: {e}")
            raise UpstreamError("Failed to delete attachment") from e


# Init Client (Graceful Failure)
try:
    supabase: Optional[Client] = (
        create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        if settings.SUPABASE_URL and settings.SUPABASE_KEY else None
    )
except Exception as e:
    logger.warning(f"Supabase init failed: {e}")
    supabase = None

attachment_storage = AttachmentStorage(
    supabase,
    bucket=settings.ATTACHMENTS_BUCKET,
    max_size=settings.MAX_ATTACHMENT_SIZE,
)
