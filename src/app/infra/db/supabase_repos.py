from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator

import httpx
from supabase import Client, PostgrestAPIError

from src.app.domain.errors import (
    DuplicateRecordError,
    GatewayError,
    GatewayUnavailableError,
    PermissionDeniedError,
    RecordNotFoundError,
)
from src.app.domain.models import Comment, Difficulty, Profile, Recipe, RecipeDraft, RecipeFilters
from src.app.infra.db.base import (
    CommentRepository,
    LikeRepository,
    ProfileRepository,
    RecipeRepository,
)

logger = logging.getLogger(__name__)

RECIPE_COLUMNS = (
    "id, user_id, title, ingredients, instructions, cooking_time, "
    "difficulty, category, image_url, created_at, updated_at"
)
COMMENT_COLUMNS = "id, recipe_id, user_id, content, created_at"
PROFILE_COLUMNS = "id, username, full_name, bio"

# PostgREST / Postgres error codes
NO_ROWS_CODE = "PGRST116"
INSUFFICIENT_PRIVILEGE_CODE = "42501"
UNIQUE_VIOLATION_CODE = "23505"
JWT_EXPIRED_CODE = "PGRST301"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _safe_int(value: object) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    return Recipe(
        id=str(row["id"]),
        owner_id=str(row["user_id"]),
        title=str(row.get("title") or ""),
        ingredients=str(row.get("ingredients") or ""),
        instructions=str(row.get("instructions") or ""),
        cooking_time=_safe_int(row.get("cooking_time")),
        difficulty=Difficulty.parse(row.get("difficulty")),
        category=_safe_str(row.get("category")),
        image_url=_safe_str(row.get("image_url")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _row_to_comment(row: dict[str, Any]) -> Comment:
    return Comment(
        id=str(row["id"]),
        recipe_id=str(row["recipe_id"]),
        user_id=str(row["user_id"]),
        content=str(row.get("content") or ""),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _row_to_profile(row: dict[str, Any]) -> Profile:
    return Profile(
        id=str(row["id"]),
        username=_safe_str(row.get("username")),
        full_name=_safe_str(row.get("full_name")),
        bio=_safe_str(row.get("bio")),
    )


def _draft_to_row(draft: RecipeDraft) -> dict[str, Any]:
    return {
        "title": draft.title,
        "ingredients": draft.ingredients,
        "instructions": draft.instructions,
        "cooking_time": draft.cooking_time,
        "difficulty": draft.difficulty.value if draft.difficulty else None,
        "category": draft.category,
        "image_url": draft.image_url,
    }


def _ilike_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _quote_filter_value(value: str) -> str:
    # reserved characters (",", ".", ":", "()") are only safe inside double quotes
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_search_clause(term: str) -> str:
    """PostgREST `or` filter matching term in title, ingredients or instructions."""
    value = _quote_filter_value(_ilike_pattern(term))
    return ",".join(
        f"{column}.ilike.{value}" for column in ("title", "ingredients", "instructions")
    )


def _translate_api_error(operation: str, table: str, error: PostgrestAPIError) -> GatewayError:
    code = str(getattr(error, "code", "") or "")
    message = str(getattr(error, "message", "") or error)

    if code == NO_ROWS_CODE:
        return RecordNotFoundError(table, operation)
    if code == UNIQUE_VIOLATION_CODE:
        return DuplicateRecordError(table, message)
    if code in (INSUFFICIENT_PRIVILEGE_CODE, JWT_EXPIRED_CODE, "401", "403"):
        return PermissionDeniedError(operation, message)

    logger.error("PostgREST error during %s on %s: code=%s message=%s", operation, table, code, message)
    return GatewayError(f"{operation} failed on {table}: {message}")


@contextmanager
def gateway_call(operation: str, table: str) -> Iterator[None]:
    """Translate supabase-py and transport errors into domain errors."""
    try:
        yield
    except PostgrestAPIError as error:
        raise _translate_api_error(operation, table, error) from error
    except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
        logger.error("Network error during %s on %s: %s", operation, table, error)
        raise GatewayUnavailableError(operation, str(error)) from error


class SupabaseProfileRepository(ProfileRepository):
    TABLE_NAME = "profiles"

    def __init__(self, client: Client):
        self._client = client

    def get_profile(self, user_id: str) -> Profile | None:
        with gateway_call("get_profile", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select(PROFILE_COLUMNS)
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        if not result.data:
            return None
        return _row_to_profile(result.data[0])

    def upsert_profile(self, profile: Profile) -> Profile:
        row = {
            "id": profile.id,
            "username": profile.username,
            "full_name": profile.full_name,
            "bio": profile.bio,
            "updated_at": _now_utc().isoformat(),
        }
        with gateway_call("upsert_profile", self.TABLE_NAME):
            result = self._client.table(self.TABLE_NAME).upsert(row).execute()

        if not result.data:
            return profile
        return _row_to_profile(result.data[0])

    def get_usernames(self, user_ids: Iterable[str]) -> dict[str, str]:
        ids = sorted({str(user_id) for user_id in user_ids if user_id})
        if not ids:
            return {}

        with gateway_call("get_usernames", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select("id, username")
                .in_("id", ids)
                .execute()
            )

        usernames: dict[str, str] = {}
        for row in result.data or []:
            username = _safe_str(row.get("username"))
            if username:
                usernames[str(row["id"])] = username
        return usernames


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client):
        self._client = client

    def list_recipes(self, filters: RecipeFilters) -> list[Recipe]:
        query = self._client.table(self.TABLE_NAME).select(RECIPE_COLUMNS)

        term = filters.search_term
        if term:
            query = query.or_(build_search_clause(term))
        category = filters.category_filter
        if category:
            query = query.eq("category", category)
        difficulty = filters.difficulty_filter
        if difficulty:
            query = query.eq("difficulty", difficulty)

        with gateway_call("list_recipes", self.TABLE_NAME):
            result = query.order("created_at", desc=True).order("id", desc=True).execute()

        return [_row_to_recipe(row) for row in result.data or []]

    def list_by_owner(self, owner_id: str) -> list[Recipe]:
        with gateway_call("list_by_owner", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select(RECIPE_COLUMNS)
                .eq("user_id", owner_id)
                .order("created_at", desc=True)
                .order("id", desc=True)
                .execute()
            )
        return [_row_to_recipe(row) for row in result.data or []]

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        with gateway_call("get_recipe", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select(RECIPE_COLUMNS)
                .eq("id", recipe_id)
                .limit(1)
                .execute()
            )
        if not result.data:
            return None
        return _row_to_recipe(result.data[0])

    def get_owned_recipe(self, recipe_id: str, owner_id: str) -> Recipe | None:
        with gateway_call("get_owned_recipe", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select(RECIPE_COLUMNS)
                .eq("id", recipe_id)
                .eq("user_id", owner_id)
                .limit(1)
                .execute()
            )
        if not result.data:
            return None
        return _row_to_recipe(result.data[0])

    def create_recipe(self, owner_id: str, draft: RecipeDraft) -> Recipe:
        row = _draft_to_row(draft)
        row["user_id"] = owner_id

        with gateway_call("create_recipe", self.TABLE_NAME):
            result = self._client.table(self.TABLE_NAME).insert(row).execute()

        if not result.data:
            raise GatewayError("create_recipe returned no data")

        recipe = _row_to_recipe(result.data[0])
        logger.info("Created recipe: id=%s, owner=%s", recipe.id, owner_id)
        return recipe

    def update_recipe(
        self,
        recipe_id: str,
        owner_id: str,
        draft: RecipeDraft,
    ) -> Recipe | None:
        row = _draft_to_row(draft)
        row["updated_at"] = _now_utc().isoformat()

        with gateway_call("update_recipe", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .update(row)
                .eq("id", recipe_id)
                .eq("user_id", owner_id)
                .execute()
            )

        if not result.data:
            return None
        return _row_to_recipe(result.data[0])

    def delete_recipe(self, recipe_id: str, owner_id: str) -> bool:
        with gateway_call("delete_recipe", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .delete()
                .eq("id", recipe_id)
                .eq("user_id", owner_id)
                .execute()
            )
        deleted = bool(result.data)
        if deleted:
            logger.info("Deleted recipe: id=%s, owner=%s", recipe_id, owner_id)
        return deleted


class SupabaseCommentRepository(CommentRepository):
    TABLE_NAME = "comments"

    def __init__(self, client: Client):
        self._client = client

    def list_comments(self, recipe_id: str) -> list[Comment]:
        with gateway_call("list_comments", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select(COMMENT_COLUMNS)
                .eq("recipe_id", recipe_id)
                .order("created_at", desc=False)
                .execute()
            )
        return [_row_to_comment(row) for row in result.data or []]

    def add_comment(self, recipe_id: str, user_id: str, content: str) -> Comment:
        row = {"recipe_id": recipe_id, "user_id": user_id, "content": content}

        with gateway_call("add_comment", self.TABLE_NAME):
            result = self._client.table(self.TABLE_NAME).insert(row).execute()

        if not result.data:
            raise GatewayError("add_comment returned no data")
        return _row_to_comment(result.data[0])


class SupabaseLikeRepository(LikeRepository):
    TABLE_NAME = "recipe_likes"

    def __init__(self, client: Client):
        self._client = client

    def count_likes(self, recipe_id: str) -> int:
        with gateway_call("count_likes", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select("id", count="exact", head=True)
                .eq("recipe_id", recipe_id)
                .execute()
            )
        return int(result.count or 0)

    def has_liked(self, recipe_id: str, user_id: str) -> bool:
        with gateway_call("has_liked", self.TABLE_NAME):
            result = (
                self._client.table(self.TABLE_NAME)
                .select("id")
                .eq("recipe_id", recipe_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        return bool(result.data)

    def add_like(self, recipe_id: str, user_id: str) -> None:
        with gateway_call("add_like", self.TABLE_NAME):
            self._client.table(self.TABLE_NAME).insert(
                {"recipe_id": recipe_id, "user_id": user_id}
            ).execute()

    def remove_like(self, recipe_id: str, user_id: str) -> None:
        with gateway_call("remove_like", self.TABLE_NAME):
            (
                self._client.table(self.TABLE_NAME)
                .delete()
                .eq("recipe_id", recipe_id)
                .eq("user_id", user_id)
                .execute()
            )
