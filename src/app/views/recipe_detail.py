# src/app/views/recipe_detail.py
"""
Recipe detail page: the recipe, its like state and its comment thread.

The three are loaded concurrently and each has its own scope, so a slow
comment reload never discards a like result and vice versa.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from pydantic import Field

from src.app.domain.models import Comment, LikeState, Recipe
from src.app.services.comment_service import CommentService
from src.app.services.like_service import LikeService
from src.app.services.orchestrator import FetchResult, FetchStatus
from src.app.services.recipe_service import RecipeService
from src.app.views.base import View, ViewState, settle


class RecipeDetailState(ViewState):
    recipe_id: str
    recipe: Optional[Recipe] = None
    not_found: bool = False
    like: Optional[LikeState] = None
    # last like state read back from the backend
    confirmed_like: Optional[LikeState] = None
    # True while the like shown is a local guess awaiting confirmation
    optimistic: bool = False
    like_error: Optional[str] = None
    comments: list[Comment] = Field(default_factory=list)
    comment_error: Optional[str] = None


class RecipeDetailView(View):
    name = "recipe-detail"

    def __init__(
        self,
        recipe_id: str,
        recipes: RecipeService,
        comments: CommentService,
        likes: LikeService,
    ):
        super().__init__()
        self._recipes = recipes
        self._comments = comments
        self._likes = likes
        self.state = RecipeDetailState(recipe_id=recipe_id)

    @property
    def recipe_id(self) -> str:
        return self.state.recipe_id

    async def load(self) -> FetchResult[Recipe]:
        self.state.loading = True
        recipe_result, _, _ = await asyncio.gather(
            self._load_recipe(),
            self.reload_like(),
            self.reload_comments(),
        )
        return recipe_result

    async def _load_recipe(self) -> FetchResult[Recipe]:
        result = await self._recipes.get_recipe(self.recipe_id, scope=self.scope("recipe"))
        if result.stale:
            return result
        if settle(self.state, result):
            self.state.recipe = result.value
            self.state.not_found = False
        else:
            self.state.not_found = result.status is FetchStatus.NOT_FOUND
        return result

    async def reload_like(self) -> FetchResult[LikeState]:
        result = await self._likes.get_like_state(self.recipe_id, scope=self.scope("like"))
        if result.stale:
            return result
        if result.ok:
            self.state.like = result.value
            self.state.confirmed_like = result.value
            self.state.optimistic = False
            self.state.like_error = None
        else:
            self.state.like_error = result.message
        return result

    async def reload_comments(self) -> FetchResult[list[Comment]]:
        result = await self._comments.list_comments(self.recipe_id, scope=self.scope("comments"))
        if result.stale:
            return result
        if result.ok:
            self.state.comments = result.value or []
            self.state.comment_error = None
        else:
            self.state.comment_error = result.message
        return result

    async def toggle_like(self) -> FetchResult[LikeState]:
        shown = self.state.like
        if shown is not None:
            delta = -1 if shown.liked else 1
            self.state.like = LikeState(
                recipe_id=shown.recipe_id,
                count=max(0, shown.count + delta),
                liked=not shown.liked,
            )
            self.state.optimistic = True

        result = await self._likes.toggle_like(self.recipe_id, scope=self.scope("like"))
        if result.stale:
            return result
        if result.ok:
            self.state.like = result.value
            self.state.confirmed_like = result.value
            self.state.like_error = None
            self.state.optimistic = False
            return result

        # the shown value may be another toggle's guess; fall back to the last
        # confirmed state, then re-read what the backend actually holds
        self.state.like = self.state.confirmed_like
        self.state.optimistic = False
        await self.reload_like()
        self.state.like_error = result.message
        return result

    async def post_comment(self, content: str) -> FetchResult[Comment]:
        result = await self._comments.post_comment(self.recipe_id, content, scope=self.scope("post"))
        if result.stale:
            return result
        if not result.ok:
            self.state.comment_error = result.message
            return result

        self.state.comment_error = None
        self.state.message = result.message
        await self.reload_comments()
        return result
