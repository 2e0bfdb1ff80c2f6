from __future__ import annotations

import asyncio

from src.app.domain.models import ImageUpload, RecipeDraft
from src.app.infra.backend import Backend
from src.app.infra.storage.base import StorageProvider, sanitize_filename
from src.app.runtime import create_runtime
from src.app.services.image_service import local_preview
from src.app.services.orchestrator import FetchStatus

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"


def _upload(content_type: str = "image/png", data: bytes = PNG_BYTES) -> ImageUpload:
    return ImageUpload(data=data, filename="My Cake!.png", content_type=content_type)


def _draft(**overrides) -> RecipeDraft:
    values = {
        "title": "Cake",
        "ingredients": "flour, sugar",
        "instructions": "Bake for 40 minutes.",
    }
    values.update(overrides)
    return RecipeDraft(**values)


class TestObjectKeys:
    def test_sanitize_filename(self) -> None:
        assert sanitize_filename("My Cake!.png") == "My_Cake_.png"
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("") == "image"

    def test_key_layout(self, backend: Backend) -> None:
        storage: StorageProvider = backend.storage
        key = storage.generate_object_key("user-1", "My Cake!.png")
        parts = key.split("/")
        assert parts[:3] == ["users", "user-1", "recipes"]
        unique, _, name = parts[3].partition("_")
        assert len(unique) == 8
        assert name == "My_Cake_.png"


class TestAttach:
    def test_successful_upload(self, backend: Backend, settings_factory, sign_in) -> None:
        async def scenario() -> None:
            runtime = create_runtime(settings_factory(), backend)
            alice = await sign_in(runtime)

            result = await runtime.images.attach(_upload())

            assert result.ok
            assert not result.value.fallback
            assert result.value.url.startswith("https://storage.example.com/")
            assert result.value.object_key.startswith(f"users/{alice.id}/recipes/")
            assert backend.storage.objects[result.value.object_key] == PNG_BYTES
            await runtime.stop()

        asyncio.run(scenario())

    def test_unsupported_type_rejected(self, backend: Backend, settings_factory, sign_in) -> None:
        async def scenario() -> None:
            runtime = create_runtime(settings_factory(), backend)
            await sign_in(runtime)

            result = await runtime.images.attach(_upload(content_type="image/bmp"))

            assert result.status is FetchStatus.INVALID
            assert backend.storage.objects == {}
            await runtime.stop()

        asyncio.run(scenario())

    def test_attach_image_from_raw_bytes(self, backend: Backend, settings_factory, sign_in) -> None:
        async def scenario() -> None:
            runtime = create_runtime(settings_factory(), backend)
            await sign_in(runtime)

            result = await runtime.images.attach_image(PNG_BYTES, "cake.webp", "image/webp")

            assert result.ok
            assert result.value.object_key.endswith("_cake.webp")
            await runtime.stop()

        asyncio.run(scenario())

    def test_failure_falls_back_to_placeholder(self, backend: Backend, settings_factory, sign_in) -> None:
        async def scenario() -> None:
            settings = settings_factory()
            runtime = create_runtime(settings, backend)
            await sign_in(runtime)
            backend.storage.fail = True

            result = await runtime.images.attach(_upload())

            assert result.ok
            assert result.value.fallback
            assert result.value.url == settings.PLACEHOLDER_IMAGE_URL
            assert result.value.preview == local_preview(_upload())
            assert result.value.preview.startswith("data:image/png;base64,")
            assert "failed" in result.message
            await runtime.stop()

        asyncio.run(scenario())


class TestUploadTimeoutScenario:
    def test_placeholder_persisted_then_overwritten(
        self, backend: Backend, settings_factory, sign_in
    ) -> None:
        async def scenario() -> None:
            settings = settings_factory(UPLOAD_TIMEOUT_SECONDS=0.05)
            runtime = create_runtime(settings, backend)
            await sign_in(runtime)
            backend.storage.delay = 0.3

            created = await runtime.recipes.create_recipe(_draft(), image=_upload())

            assert created.ok
            saved = created.value
            assert saved.image.fallback
            assert saved.recipe.image_url == settings.PLACEHOLDER_IMAGE_URL
            assert "timed out" in created.message
            stored = backend.recipes.recipes[saved.recipe.id]
            assert stored.image_url == settings.PLACEHOLDER_IMAGE_URL

            backend.storage.delay = None
            updated = await runtime.recipes.update_recipe(saved.recipe.id, _draft(), image=_upload())

            assert updated.ok
            assert not updated.value.image.fallback
            assert backend.recipes.recipes[saved.recipe.id].image_url.startswith(
                "https://storage.example.com/"
            )

            pasted = await runtime.recipes.update_recipe(
                saved.recipe.id, _draft(image_url="https://cdn.example.com/real.png")
            )
            assert pasted.ok
            assert pasted.value.image is None
            assert backend.recipes.recipes[saved.recipe.id].image_url == "https://cdn.example.com/real.png"
            await runtime.stop()

        asyncio.run(scenario())

    def test_signed_out_upload_does_not_fall_back(self, backend: Backend, settings_factory) -> None:
        async def scenario() -> None:
            runtime = create_runtime(settings_factory(), backend)
            await runtime.start()

            result = await runtime.images.attach(_upload())

            assert result.status is FetchStatus.AUTH_REQUIRED
            await runtime.stop()

        asyncio.run(scenario())
