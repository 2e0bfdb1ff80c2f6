from __future__ import annotations

import base64
import logging

from src.app.domain.errors import ValidationError
from src.app.domain.models import Identity, ImageAttachment, ImageUpload
from src.app.infra.storage.base import StorageProvider
from src.app.services.orchestrator import (
    FetchOrchestrator,
    FetchResult,
    FetchStatus,
    OperationKind,
)

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/webp",
}

# Max image size (10MB)
MAX_IMAGE_BYTES = 10 * 1024 * 1024

TIMEOUT_FALLBACK_MESSAGE = (
    "Image upload timed out. A placeholder image was saved; "
    "add the image again when editing the recipe."
)
FAILURE_FALLBACK_MESSAGE = (
    "Image upload failed. A placeholder image was saved; "
    "add the image again when editing the recipe."
)


def _validate_upload(upload: ImageUpload) -> None:
    if upload.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Unsupported image format. Allowed formats: PNG, JPG, JPEG, GIF, WEBP.",
            field="image",
        )
    if not upload.data:
        raise ValidationError("Image file is empty", field="image")
    if len(upload.data) > MAX_IMAGE_BYTES:
        raise ValidationError(
            f"Image too large. Maximum size: {MAX_IMAGE_BYTES // (1024 * 1024)}MB",
            field="image",
        )


def local_preview(upload: ImageUpload) -> str:
    """Data URI the client can render while the real upload is missing."""
    encoded = base64.b64encode(upload.data).decode("ascii")
    return f"data:{upload.content_type};base64,{encoded}"


class ImageService:
    """
    Uploads recipe images to object storage.

    An upload that fails or misses its deadline never blocks the recipe
    write: the caller gets a placeholder reference to persist, a local
    preview, and a message to show.
    """

    def __init__(
        self,
        storage: StorageProvider,
        orchestrator: FetchOrchestrator,
        placeholder_url: str,
    ):
        self._storage = storage
        self._orchestrator = orchestrator
        self.placeholder_url = placeholder_url

    async def attach(self, upload: ImageUpload) -> FetchResult[ImageAttachment]:
        try:
            _validate_upload(upload)
        except ValidationError as error:
            return FetchResult.rejected(error)

        def _upload(identity: Identity) -> ImageAttachment:
            object_key = self._storage.generate_object_key(identity.id, upload.filename)
            url = self._storage.upload(object_key, upload.data, upload.content_type)
            return ImageAttachment(url=url, object_key=object_key)

        result = await self._orchestrator.run_as_user(
            _upload,
            label="upload image",
            kind=OperationKind.UPLOAD,
        )
        if result.ok or result.status is FetchStatus.AUTH_REQUIRED:
            return result

        message = (
            TIMEOUT_FALLBACK_MESSAGE
            if result.status is FetchStatus.TIMED_OUT
            else FAILURE_FALLBACK_MESSAGE
        )
        logger.warning(
            "Image upload degraded to placeholder: status=%s, filename=%s",
            result.status.value,
            upload.filename,
        )
        return FetchResult.success(
            ImageAttachment(
                url=self.placeholder_url,
                fallback=True,
                preview=local_preview(upload),
                message=message,
            ),
            message=message,
        )

    async def attach_image(
        self,
        data: bytes,
        filename: str,
        content_type: str,
    ) -> FetchResult[ImageAttachment]:
        return await self.attach(ImageUpload(data=data, filename=filename, content_type=content_type))
