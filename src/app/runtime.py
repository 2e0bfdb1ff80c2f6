# src/app/runtime.py
"""
Application runtime: the session store, the orchestrator and the services
built on them, wired from one Backend. Created at startup and torn down at
shutdown; requests reach it through `app.state.runtime`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from src.app.config import Settings
from src.app.infra.backend import Backend
from src.app.services.auth_service import AuthService
from src.app.services.comment_service import CommentService
from src.app.services.image_service import ImageService
from src.app.services.like_service import LikeService
from src.app.services.orchestrator import FetchOrchestrator
from src.app.services.profile_service import ProfileService
from src.app.services.recipe_service import RecipeService
from src.app.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class AppRuntime:
    settings: Settings
    backend: Backend
    session: SessionStore
    orchestrator: FetchOrchestrator
    auth: AuthService
    recipes: RecipeService
    comments: CommentService
    likes: LikeService
    profiles: ProfileService
    images: ImageService

    async def start(self) -> None:
        await self.session.initialize()

    async def stop(self) -> None:
        await self.session.teardown()


def create_runtime(settings: Settings, backend: Backend) -> AppRuntime:
    session = SessionStore(
        backend.auth,
        backend.profiles,
        profile_timeout=settings.READ_TIMEOUT_SECONDS,
    )
    orchestrator = FetchOrchestrator.from_settings(session, settings)
    images = ImageService(backend.storage, orchestrator, settings.PLACEHOLDER_IMAGE_URL)

    logger.info("Runtime created: env=%s", settings.APP_ENV)
    return AppRuntime(
        settings=settings,
        backend=backend,
        session=session,
        orchestrator=orchestrator,
        auth=AuthService(backend.auth, orchestrator),
        recipes=RecipeService(backend.recipes, backend.profiles, images, orchestrator),
        comments=CommentService(backend.comments, backend.profiles, orchestrator),
        likes=LikeService(backend.likes, orchestrator),
        profiles=ProfileService(backend.profiles, orchestrator),
        images=images,
    )
