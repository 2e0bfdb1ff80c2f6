# src/app/main.py
from __future__ import annotations

import logging
import sys
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.config import Settings, get_settings
from src.app.infra.backend import Backend, build_supabase_backend
from src.app.routers.auth import router as auth_router
from src.app.routers.dashboard import router as dashboard_router
from src.app.routers.image_proxy import router as image_proxy_router
from src.app.routers.profile import router as profile_router
from src.app.routers.recipes import router as recipes_router
from src.app.runtime import create_runtime

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    # plain stdout logging, fine for dev and containers
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(settings: Optional[Settings] = None, backend: Optional[Backend] = None) -> FastAPI:
    """
    Build the API. Missing gateway configuration raises ConfigurationError
    here, before anything is served.

    Run with: uvicorn src.app.main:create_app --factory
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Recipe Share API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.FRONTEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(recipes_router)
    app.include_router(dashboard_router)
    app.include_router(profile_router)
    app.include_router(image_proxy_router)

    @app.on_event("startup")
    async def startup() -> None:
        runtime = create_runtime(settings, backend or build_supabase_backend(settings))
        app.state.runtime = runtime
        app.state.http_client = httpx.AsyncClient(timeout=settings.IMAGE_PROXY_TIMEOUT_SECONDS)
        await runtime.start()

    @app.on_event("shutdown")
    async def shutdown() -> None:
        runtime = getattr(app.state, "runtime", None)
        if runtime is not None:
            await runtime.stop()
        client = getattr(app.state, "http_client", None)
        if client is not None:
            await client.aclose()

    @app.get("/health")
    def health():
        return {"ok": True}

    return app
