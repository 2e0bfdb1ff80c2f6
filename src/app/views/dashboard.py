from __future__ import annotations

from pydantic import Field

from src.app.domain.models import Recipe
from src.app.services.orchestrator import FetchResult
from src.app.services.recipe_service import RecipeService
from src.app.views.base import View, ViewState, settle


class DashboardState(ViewState):
    recipes: list[Recipe] = Field(default_factory=list)


class DashboardView(View):
    """The signed-in user's own recipes."""

    name = "dashboard"

    def __init__(self, recipes: RecipeService):
        super().__init__()
        self._recipes = recipes
        self.state = DashboardState()

    async def load(self) -> FetchResult[list[Recipe]]:
        self.state.loading = True
        result = await self._recipes.list_user_recipes(scope=self.scope())
        if result.stale:
            return result
        if settle(self.state, result):
            self.state.recipes = result.value or []
        return result

    async def delete(self, recipe_id: str) -> FetchResult[None]:
        result = await self._recipes.delete_recipe(recipe_id, scope=self.scope("delete"))
        if result.stale:
            return result
        if not settle(self.state, result):
            return result
        # re-query rather than dropping the row locally
        await self.load()
        return result
