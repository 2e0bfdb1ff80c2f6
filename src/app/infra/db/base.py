# src/app/infra/db/base.py
"""
Abstract base classes for the table-backed repositories.
Row-level security is enforced by the backend; these interfaces only
describe the queries the app issues.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from src.app.domain.models import Comment, Profile, Recipe, RecipeDraft, RecipeFilters


class ProfileRepository(ABC):

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Profile]:
        """
        Get the profile for a user.

        Returns:
            The profile, or None if it does not exist yet
        """
        pass

    @abstractmethod
    def upsert_profile(self, profile: Profile) -> Profile:
        """
        Create or replace the profile row keyed by profile.id.

        Returns:
            The stored profile
        """
        pass

    @abstractmethod
    def get_usernames(self, user_ids: Iterable[str]) -> dict[str, str]:
        """
        Resolve usernames for a batch of user ids.

        Returns:
            Mapping of user id to username; ids without a profile are absent
        """
        pass


class RecipeRepository(ABC):
    """
    Interface for recipe persistence.

    Implementations:
    - SupabaseRecipeRepository: `recipes` table through PostgREST
    """

    @abstractmethod
    def list_recipes(self, filters: RecipeFilters) -> list[Recipe]:
        """
        List recipes matching all active filters, newest first.

        Args:
            filters: Search term plus category/difficulty; sentinel values are no-ops

        Returns:
            Recipes ordered by created_at descending
        """
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list[Recipe]:
        """List the recipes owned by a user, newest first."""
        pass

    @abstractmethod
    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        pass

    @abstractmethod
    def get_owned_recipe(self, recipe_id: str, owner_id: str) -> Optional[Recipe]:
        """Get a recipe only if it is owned by owner_id."""
        pass

    @abstractmethod
    def create_recipe(self, owner_id: str, draft: RecipeDraft) -> Recipe:
        pass

    @abstractmethod
    def update_recipe(
        self,
        recipe_id: str,
        owner_id: str,
        draft: RecipeDraft,
    ) -> Optional[Recipe]:
        """
        Update every writable field of an owned recipe.

        Returns:
            The updated recipe, or None if no owned recipe matched
        """
        pass

    @abstractmethod
    def delete_recipe(self, recipe_id: str, owner_id: str) -> bool:
        """
        Delete an owned recipe.

        Returns:
            True if a row was deleted
        """
        pass


class CommentRepository(ABC):

    @abstractmethod
    def list_comments(self, recipe_id: str) -> list[Comment]:
        """List comments of a recipe, oldest first."""
        pass

    @abstractmethod
    def add_comment(self, recipe_id: str, user_id: str, content: str) -> Comment:
        pass


class LikeRepository(ABC):

    @abstractmethod
    def count_likes(self, recipe_id: str) -> int:
        pass

    @abstractmethod
    def has_liked(self, recipe_id: str, user_id: str) -> bool:
        pass

    @abstractmethod
    def add_like(self, recipe_id: str, user_id: str) -> None:
        """
        Insert the (recipe, user) pair.

        Raises:
            DuplicateRecordError: if the pair already exists
        """
        pass

    @abstractmethod
    def remove_like(self, recipe_id: str, user_id: str) -> None:
        pass
