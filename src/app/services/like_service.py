# src/app/services/like_service.py
"""
Like state and toggling.

The backend is the source of truth: every toggle ends with a fresh read of
the count and of the user's liked flag, so the UI converges on what was
actually stored even after a lost or duplicated write.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.app.domain.errors import DuplicateRecordError
from src.app.domain.models import Identity, LikeState
from src.app.infra.db.base import LikeRepository
from src.app.services.orchestrator import (
    FetchOrchestrator,
    FetchResult,
    FetchScope,
    OperationKind,
)

logger = logging.getLogger(__name__)


class LikeService:
    def __init__(self, likes: LikeRepository, orchestrator: FetchOrchestrator):
        self._likes = likes
        self._orchestrator = orchestrator
        # one toggle at a time per (user, recipe); dropped once nobody holds or awaits it
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, str], int] = {}

    def _read_state(self, recipe_id: str, identity: Optional[Identity]) -> LikeState:
        count = self._likes.count_likes(recipe_id)
        liked = identity is not None and self._likes.has_liked(recipe_id, identity.id)
        return LikeState(recipe_id=recipe_id, count=count, liked=liked)

    async def get_like_state(
        self,
        recipe_id: str,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[LikeState]:
        return await self._orchestrator.run_for_viewer(
            lambda identity: self._read_state(recipe_id, identity),
            label="get like state",
            scope=scope,
        )

    async def toggle_like(
        self,
        recipe_id: str,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[LikeState]:
        def _toggle(user: Identity) -> LikeState:
            if self._likes.has_liked(recipe_id, user.id):
                self._likes.remove_like(recipe_id, user.id)
            else:
                try:
                    self._likes.add_like(recipe_id, user.id)
                except DuplicateRecordError:
                    logger.info("Like already stored: recipe=%s, user=%s", recipe_id, user.id)
            return self._read_state(recipe_id, user)

        session = self._orchestrator.session
        await session.wait_until_resolved()
        identity = session.current_user()
        key = (identity.id if identity else "", recipe_id)

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._orchestrator.run_as_user(
                    _toggle,
                    label="toggle like",
                    kind=OperationKind.MUTATION,
                    scope=scope,
                )
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]
