# src/app/services/recipe_service.py
"""
Recipe reads and owner writes.

Author usernames are resolved in one batch per page and attached to each
recipe; a recipe whose author has no profile shows as "Unknown".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from src.app.domain.errors import RecordNotFoundError, ValidationError
from src.app.domain.models import (
    Difficulty,
    Identity,
    ImageAttachment,
    ImageUpload,
    Recipe,
    RecipeDraft,
    RecipeFilters,
)
from src.app.infra.db.base import ProfileRepository, RecipeRepository
from src.app.services.image_service import ImageService
from src.app.services.orchestrator import (
    FetchOrchestrator,
    FetchResult,
    FetchScope,
    FetchStatus,
    OperationKind,
)

logger = logging.getLogger(__name__)

CREATED_MESSAGE = "Recipe created successfully!"
UPDATED_MESSAGE = "Recipe updated successfully!"
DELETED_MESSAGE = "Recipe deleted."
EDIT_NOT_FOUND_MESSAGE = "Recipe not found or you don't have permission to edit it."
RECIPE_NOT_FOUND_MESSAGE = "Recipe not found."


@dataclass
class SavedRecipe:
    """A written recipe plus the image outcome, if an image was attached."""
    recipe: Recipe
    image: Optional[ImageAttachment] = None


def _required(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required", field=field)
    return text


def validate_draft(draft: RecipeDraft) -> RecipeDraft:
    """
    Normalize a draft before it is written.

    Raises:
        ValidationError: on a missing required field or a bad cooking time
    """
    cooking_time = draft.cooking_time
    if cooking_time is not None:
        if isinstance(cooking_time, bool) or not isinstance(cooking_time, int) or cooking_time <= 0:
            raise ValidationError("Cooking time must be a positive number of minutes", field="cooking_time")

    difficulty = draft.difficulty
    if difficulty is not None:
        parsed = Difficulty.parse(difficulty)
        if parsed is None:
            raise ValidationError("Difficulty must be Easy, Medium or Hard", field="difficulty")
        difficulty = parsed

    category = (draft.category or "").strip() or None
    image_url = (draft.image_url or "").strip() or None

    return RecipeDraft(
        title=_required(draft.title, "title"),
        ingredients=_required(draft.ingredients, "ingredients"),
        instructions=_required(draft.instructions, "instructions"),
        cooking_time=cooking_time,
        difficulty=difficulty,
        category=category,
        image_url=image_url,
    )


class RecipeService:
    def __init__(
        self,
        recipes: RecipeRepository,
        profiles: ProfileRepository,
        images: ImageService,
        orchestrator: FetchOrchestrator,
    ):
        self._recipes = recipes
        self._profiles = profiles
        self._images = images
        self._orchestrator = orchestrator

    def _with_authors(self, recipes: list[Recipe]) -> list[Recipe]:
        if not recipes:
            return []
        usernames = self._profiles.get_usernames({recipe.owner_id for recipe in recipes})
        return [recipe.with_author(usernames.get(recipe.owner_id)) for recipe in recipes]

    async def list_recipes(
        self,
        filters: Optional[RecipeFilters] = None,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[list[Recipe]]:
        filters = filters or RecipeFilters()
        return await self._orchestrator.run(
            lambda: self._with_authors(self._recipes.list_recipes(filters)),
            label="list recipes",
            scope=scope,
        )

    async def get_recipe(
        self,
        recipe_id: str,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[Recipe]:
        def _get() -> Recipe:
            recipe = self._recipes.get_recipe(recipe_id)
            if recipe is None:
                raise RecordNotFoundError("recipes", recipe_id)
            return self._with_authors([recipe])[0]

        return await self._orchestrator.run(
            _get,
            label="get recipe",
            scope=scope,
            messages={FetchStatus.NOT_FOUND: RECIPE_NOT_FOUND_MESSAGE},
        )

    async def list_user_recipes(self, scope: Optional[FetchScope] = None) -> FetchResult[list[Recipe]]:
        return await self._orchestrator.run_as_user(
            lambda identity: self._with_authors(self._recipes.list_by_owner(identity.id)),
            label="list user recipes",
            scope=scope,
        )

    async def get_owned_recipe(
        self,
        recipe_id: str,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[Recipe]:
        def _get(identity: Identity) -> Recipe:
            recipe = self._recipes.get_owned_recipe(recipe_id, identity.id)
            if recipe is None:
                raise RecordNotFoundError("recipes", recipe_id)
            return recipe

        return await self._orchestrator.run_as_user(
            _get,
            label="get owned recipe",
            scope=scope,
            messages={FetchStatus.NOT_FOUND: EDIT_NOT_FOUND_MESSAGE},
        )

    async def _prepare(
        self,
        draft: RecipeDraft,
        image: Optional[ImageUpload],
    ) -> tuple[Optional[RecipeDraft], Optional[ImageAttachment], Optional[FetchResult]]:
        try:
            clean = validate_draft(draft)
        except ValidationError as error:
            return None, None, FetchResult.rejected(error)

        if image is None:
            return clean, None, None

        attached = await self._images.attach(image)
        if not attached.ok:
            return None, None, FetchResult.failure(attached.status, attached.message)
        attachment = attached.value
        return replace(clean, image_url=attachment.url), attachment, None

    async def create_recipe(
        self,
        draft: RecipeDraft,
        image: Optional[ImageUpload] = None,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[SavedRecipe]:
        clean, attachment, rejected = await self._prepare(draft, image)
        if rejected is not None:
            return rejected

        result = await self._orchestrator.run_as_user(
            lambda identity: SavedRecipe(self._recipes.create_recipe(identity.id, clean), attachment),
            label="create recipe",
            kind=OperationKind.MUTATION,
            scope=scope,
        )
        if result.ok:
            logger.info("Recipe created: id=%s", result.value.recipe.id)
            result.message = _saved_message(CREATED_MESSAGE, attachment)
        return result

    async def update_recipe(
        self,
        recipe_id: str,
        draft: RecipeDraft,
        image: Optional[ImageUpload] = None,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[SavedRecipe]:
        clean, attachment, rejected = await self._prepare(draft, image)
        if rejected is not None:
            return rejected

        def _update(identity: Identity) -> SavedRecipe:
            recipe = self._recipes.update_recipe(recipe_id, identity.id, clean)
            if recipe is None:
                raise RecordNotFoundError("recipes", recipe_id)
            return SavedRecipe(recipe, attachment)

        result = await self._orchestrator.run_as_user(
            _update,
            label="update recipe",
            kind=OperationKind.MUTATION,
            scope=scope,
            messages={FetchStatus.NOT_FOUND: EDIT_NOT_FOUND_MESSAGE},
        )
        if result.ok:
            logger.info("Recipe updated: id=%s", recipe_id)
            result.message = _saved_message(UPDATED_MESSAGE, attachment)
        return result

    async def delete_recipe(
        self,
        recipe_id: str,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[None]:
        def _delete(identity: Identity) -> None:
            if not self._recipes.delete_recipe(recipe_id, identity.id):
                raise RecordNotFoundError("recipes", recipe_id)

        result = await self._orchestrator.run_as_user(
            _delete,
            label="delete recipe",
            kind=OperationKind.MUTATION,
            scope=scope,
            messages={FetchStatus.NOT_FOUND: EDIT_NOT_FOUND_MESSAGE},
        )
        if result.ok:
            logger.info("Recipe deleted: id=%s", recipe_id)
            result.message = DELETED_MESSAGE
        return result


def _saved_message(base: str, attachment: Optional[ImageAttachment]) -> str:
    if attachment is not None and attachment.fallback and attachment.message:
        return f"{base} {attachment.message}"
    return base
