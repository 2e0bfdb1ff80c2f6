# src/app/infra/storage/base.py
"""
Abstract base class for storage providers.
"""
from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from uuid import uuid4


class StorageProvider(ABC):
    """
    Abstract interface for object storage operations.

    Implementations:
    - SupabaseStorageProvider: Supabase Storage bucket with public URLs
    """

    @abstractmethod
    def upload(self, object_key: str, data: bytes, content_type: str) -> str:
        """
        Upload bytes under object_key.

        Args:
            object_key: The key/path where the object will be stored
            data: Raw file content
            content_type: MIME type of the content (e.g., "image/png")

        Returns:
            Public URL of the stored object

        Raises:
            UploadError: if the storage backend rejects the upload
        """
        pass

    def generate_object_key(
        self,
        user_id: str,
        filename: str,
        prefix: str = "recipes",
    ) -> str:
        """
        Generate a standardized object key for recipe images.

        Format: users/{user_id}/{prefix}/{uuid8}_{filename}
        """
        safe_filename = sanitize_filename(filename)
        unique_id = uuid4().hex[:8]
        return f"users/{user_id}/{prefix}/{unique_id}_{safe_filename}"


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for storage."""
    filename = os.path.basename(filename or "")
    filename = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)
    if len(filename) > 100:
        name, ext = os.path.splitext(filename)
        filename = name[:95] + ext
    return filename or "image"
