# src/app/views/recipe_editor.py
"""
Create and edit forms.

Editing is limited to the owner's recipes: a recipe that does not exist
and one owned by someone else look the same here.
"""
from __future__ import annotations

from typing import Optional

from src.app.domain.models import ImageAttachment, ImageUpload, Recipe, RecipeDraft
from src.app.services.orchestrator import FetchResult, FetchStatus
from src.app.services.recipe_service import RecipeService, SavedRecipe
from src.app.views.base import View, ViewState, settle


class RecipeEditorState(ViewState):
    recipe_id: Optional[str] = None
    recipe: Optional[Recipe] = None
    not_found: bool = False
    image: Optional[ImageAttachment] = None


class RecipeEditorView(View):
    name = "recipe-editor"

    def __init__(self, recipes: RecipeService):
        super().__init__()
        self._recipes = recipes
        self.state = RecipeEditorState()

    async def load(self, recipe_id: str) -> FetchResult[Recipe]:
        self.state.recipe_id = recipe_id
        self.state.loading = True
        result = await self._recipes.get_owned_recipe(recipe_id, scope=self.scope())
        if result.stale:
            return result
        if settle(self.state, result):
            self.state.recipe = result.value
            self.state.not_found = False
        else:
            self.state.recipe = None
            self.state.not_found = result.status is FetchStatus.NOT_FOUND
        return result

    async def create(
        self,
        draft: RecipeDraft,
        image: Optional[ImageUpload] = None,
    ) -> FetchResult[SavedRecipe]:
        self.state.loading = True
        result = await self._recipes.create_recipe(draft, image=image, scope=self.scope("save"))
        return self._apply_saved(result)

    async def save(
        self,
        draft: RecipeDraft,
        image: Optional[ImageUpload] = None,
    ) -> FetchResult[SavedRecipe]:
        """Save the loaded recipe, or create a new one when none is loaded."""
        if self.state.recipe_id is None:
            return await self.create(draft, image)

        self.state.loading = True
        result = await self._recipes.update_recipe(
            self.state.recipe_id,
            draft,
            image=image,
            scope=self.scope("save"),
        )
        return self._apply_saved(result)

    def _apply_saved(self, result: FetchResult[SavedRecipe]) -> FetchResult[SavedRecipe]:
        if result.stale:
            return result
        if settle(self.state, result):
            saved = result.value
            self.state.recipe = saved.recipe
            self.state.recipe_id = saved.recipe.id
            self.state.image = saved.image
        elif result.status is FetchStatus.NOT_FOUND:
            self.state.not_found = True
        return result
