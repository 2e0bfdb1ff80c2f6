# src/app/routers/image_proxy.py
"""
Same-origin image relay: fetches a remote image server-side and returns
the bytes with permissive CORS headers, so recipe images from hosts that
block hotlinking still render.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from src.app.deps import get_http_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["images"])

UPSTREAM_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; RecipeApp/1.0)",
    "Accept": "image/*",
}
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
    "Access-Control-Allow-Headers": "Content-Type",
}
DEFAULT_CONTENT_TYPE = "image/jpeg"
CACHE_CONTROL = "public, max-age=3600"


def _failure(details: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to fetch image", "details": details},
    )


@router.get("/image-proxy")
async def image_proxy(
    url: Optional[str] = Query(default=None),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    if not url:
        return JSONResponse(status_code=400, content={"error": "Image URL is required"})

    try:
        upstream = await client.get(url, headers=UPSTREAM_HEADERS, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Image proxy fetch failed: url=%s, error=%s", url, exc)
        return _failure(str(exc) or exc.__class__.__name__)

    if not upstream.is_success:
        logger.warning("Image proxy upstream error: url=%s, status=%s", url, upstream.status_code)
        return _failure(f"Image fetch failed: {upstream.status_code}")

    content_type = upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    return Response(
        content=upstream.content,
        media_type=content_type,
        headers={"Cache-Control": CACHE_CONTROL, **CORS_HEADERS},
    )
