from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from src.app.config import Settings
from src.app.deps import get_http_client
from src.app.infra.backend import Backend
from src.app.main import create_app

IMAGE_URL = "https://images.example.com/cake.png"


def _client_for(settings: Settings, backend: Backend, handler) -> TestClient:
    app = create_app(settings=settings, backend=backend)
    mock_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_http_client] = lambda: mock_client
    return TestClient(app)


class TestImageProxy:
    def test_relays_image(self, settings: Settings, backend: Backend) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"png-bytes", headers={"Content-Type": "image/png"})

        with _client_for(settings, backend, handler) as client:
            response = client.get("/api/image-proxy", params={"url": IMAGE_URL})

        assert response.status_code == 200
        assert response.content == b"png-bytes"
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "public, max-age=3600"
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "GET"
        assert response.headers["access-control-allow-headers"] == "Content-Type"
        assert str(seen[0].url) == IMAGE_URL
        assert seen[0].headers["user-agent"] == "Mozilla/5.0 (compatible; RecipeApp/1.0)"
        assert seen[0].headers["accept"] == "image/*"

    def test_defaults_content_type(self, settings: Settings, backend: Backend) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"bytes")

        with _client_for(settings, backend, handler) as client:
            response = client.get("/api/image-proxy", params={"url": IMAGE_URL})

        assert response.headers["content-type"] == "image/jpeg"

    def test_missing_url(self, settings: Settings, backend: Backend) -> None:
        with _client_for(settings, backend, lambda request: httpx.Response(200)) as client:
            response = client.get("/api/image-proxy")

        assert response.status_code == 400
        assert response.json() == {"error": "Image URL is required"}

    @pytest.mark.parametrize("status_code", [403, 404, 502])
    def test_upstream_error_status(self, settings: Settings, backend: Backend, status_code: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code)

        with _client_for(settings, backend, handler) as client:
            response = client.get("/api/image-proxy", params={"url": IMAGE_URL})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to fetch image",
            "details": f"Image fetch failed: {status_code}",
        }

    def test_upstream_unreachable(self, settings: Settings, backend: Backend) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _client_for(settings, backend, handler) as client:
            response = client.get("/api/image-proxy", params={"url": IMAGE_URL})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch image"
        assert "connection refused" in response.json()["details"]
