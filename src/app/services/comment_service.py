from __future__ import annotations

import logging
from typing import Optional

from src.app.domain.errors import EmptyContentError
from src.app.domain.models import Comment, Identity
from src.app.infra.db.base import CommentRepository, ProfileRepository
from src.app.services.orchestrator import (
    FetchOrchestrator,
    FetchResult,
    FetchScope,
    OperationKind,
)

logger = logging.getLogger(__name__)

COMMENT_POSTED_MESSAGE = "Comment posted."


class CommentService:
    def __init__(
        self,
        comments: CommentRepository,
        profiles: ProfileRepository,
        orchestrator: FetchOrchestrator,
    ):
        self._comments = comments
        self._profiles = profiles
        self._orchestrator = orchestrator

    def _thread(self, recipe_id: str) -> list[Comment]:
        comments = self._comments.list_comments(recipe_id)
        if not comments:
            return []
        usernames = self._profiles.get_usernames({comment.user_id for comment in comments})
        for comment in comments:
            comment.author_username = usernames.get(comment.user_id) or "Unknown"
        return comments

    async def list_comments(
        self,
        recipe_id: str,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[list[Comment]]:
        """Comments of a recipe, oldest first, with author usernames."""
        return await self._orchestrator.run(
            lambda: self._thread(recipe_id),
            label="list comments",
            scope=scope,
        )

    async def post_comment(
        self,
        recipe_id: str,
        content: str,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[Comment]:
        text = (content or "").strip()
        if not text:
            return FetchResult.rejected(EmptyContentError())

        def _post(identity: Identity) -> Comment:
            return self._comments.add_comment(recipe_id, identity.id, text)

        result = await self._orchestrator.run_as_user(
            _post,
            label="post comment",
            kind=OperationKind.MUTATION,
            scope=scope,
        )
        if result.ok:
            result.message = COMMENT_POSTED_MESSAGE
        return result
