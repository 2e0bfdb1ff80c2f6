from __future__ import annotations

from typing import Optional

from pydantic import Field

from src.app.domain.models import Recipe, RecipeFilters
from src.app.services.orchestrator import FetchResult
from src.app.services.recipe_service import RecipeService
from src.app.views.base import View, ViewState, settle


class RecipeListState(ViewState):
    filters: RecipeFilters = Field(default_factory=RecipeFilters)
    recipes: list[Recipe] = Field(default_factory=list)


class RecipeListView(View):
    """Home page: all recipes, narrowed by search, category and difficulty."""

    name = "recipe-list"

    def __init__(self, recipes: RecipeService):
        super().__init__()
        self._recipes = recipes
        self.state = RecipeListState()

    async def refresh(self, filters: Optional[RecipeFilters] = None) -> FetchResult[list[Recipe]]:
        if filters is not None:
            self.state.filters = filters
        self.state.loading = True

        result = await self._recipes.list_recipes(self.state.filters, scope=self.scope())
        if result.stale:
            return result
        if settle(self.state, result):
            self.state.recipes = result.value or []
        return result

    async def clear_filters(self) -> FetchResult[list[Recipe]]:
        return await self.refresh(RecipeFilters())
