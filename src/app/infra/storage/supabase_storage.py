"""
Supabase Storage provider: public bucket for recipe images.
"""
from __future__ import annotations

import logging

import httpx
from supabase import Client, StorageException

from src.app.domain.errors import UploadError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class SupabaseStorageProvider(StorageProvider):
    def __init__(self, client: Client, bucket_name: str):
        self._client = client
        self.bucket_name = bucket_name

    def upload(self, object_key: str, data: bytes, content_type: str) -> str:
        bucket = self._client.storage.from_(self.bucket_name)
        try:
            bucket.upload(object_key, data, {"content-type": content_type})
            public_url = bucket.get_public_url(object_key)
        except StorageException as error:
            logger.error("Storage rejected upload: key=%s, error=%s", object_key, error)
            raise UploadError(object_key, str(error)) from error
        except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
            logger.error("Network error uploading %s: %s", object_key, error)
            raise UploadError(object_key, str(error)) from error

        logger.info(
            "Uploaded object: bucket=%s, key=%s, size=%d",
            self.bucket_name,
            object_key,
            len(data),
        )
        return str(public_url).rstrip("?")
