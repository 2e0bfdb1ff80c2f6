from __future__ import annotations

import asyncio
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional
from uuid import uuid4

import pytest

from src.app.config import Settings
from src.app.domain.errors import (
    AuthenticationError,
    DuplicateRecordError,
    GatewayUnavailableError,
    UploadError,
)
from src.app.domain.models import (
    AuthEvent,
    AuthSession,
    Comment,
    Identity,
    Profile,
    Recipe,
    RecipeDraft,
    RecipeFilters,
)
from src.app.infra.auth.base import AuthGateway, AuthListener
from src.app.infra.backend import Backend
from src.app.infra.db.base import (
    CommentRepository,
    LikeRepository,
    ProfileRepository,
    RecipeRepository,
)
from src.app.infra.storage.base import StorageProvider
from src.app.runtime import AppRuntime, create_runtime

_EPOCH = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class InMemoryAuthGateway(AuthGateway):
    def __init__(self) -> None:
        self.accounts: dict[str, tuple[str, Identity]] = {}
        self.session: Optional[AuthSession] = None
        self.listeners: list[AuthListener] = []
        self.calls: list[str] = []
        self.fail_get_session = False

    def add_account(self, email: str, password: str, user_id: Optional[str] = None) -> Identity:
        identity = Identity(id=user_id or str(uuid4()), email=email)
        self.accounts[email] = (password, identity)
        return identity

    def emit(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for listener in list(self.listeners):
            listener(event, session)

    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        self.calls.append("sign_up")
        if email in self.accounts:
            raise AuthenticationError("User already registered")
        return self.add_account(email, password)

    def sign_in(self, email: str, password: str) -> AuthSession:
        self.calls.append("sign_in")
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthenticationError("Invalid login credentials")
        self.session = AuthSession(access_token=f"token-{account[1].id}", identity=account[1])
        self.emit(AuthEvent.SIGNED_IN, self.session)
        return self.session

    def sign_out(self) -> None:
        self.calls.append("sign_out")
        self.session = None
        self.emit(AuthEvent.SIGNED_OUT, None)

    def get_session(self) -> Optional[AuthSession]:
        self.calls.append("get_session")
        if self.fail_get_session:
            raise GatewayUnavailableError("get_session", "connection refused")
        return self.session

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self.listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return _unsubscribe


class InMemoryProfileRepository(ProfileRepository):
    def __init__(self) -> None:
        self.profiles: dict[str, Profile] = {}
        self.get_calls = 0
        self.fail = False
        # when set, get_profile blocks until the event is set
        self.gate: Optional[threading.Event] = None

    def get_profile(self, user_id: str) -> Optional[Profile]:
        self.get_calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail:
            raise GatewayUnavailableError("get_profile", "connection reset")
        return self.profiles.get(user_id)

    def upsert_profile(self, profile: Profile) -> Profile:
        self.profiles[profile.id] = profile
        return profile

    def get_usernames(self, user_ids: Iterable[str]) -> dict[str, str]:
        return {
            user_id: self.profiles[user_id].username
            for user_id in user_ids
            if user_id in self.profiles and self.profiles[user_id].username
        }


class InMemoryRecipeRepository(RecipeRepository):
    def __init__(self) -> None:
        self.recipes: dict[str, Recipe] = {}
        self._clock = 0

    def _matches(self, recipe: Recipe, filters: RecipeFilters) -> bool:
        term = filters.search_term
        if term:
            needle = term.lower()
            haystacks = (recipe.title, recipe.ingredients, recipe.instructions)
            if not any(needle in (text or "").lower() for text in haystacks):
                return False
        category = filters.category_filter
        if category and recipe.category != category:
            return False
        difficulty = filters.difficulty_filter
        if difficulty and (recipe.difficulty is None or recipe.difficulty.value != difficulty):
            return False
        return True

    @staticmethod
    def _newest_first(recipes: Iterable[Recipe]) -> list[Recipe]:
        return sorted(recipes, key=lambda r: (r.created_at, r.id), reverse=True)

    def list_recipes(self, filters: RecipeFilters) -> list[Recipe]:
        return self._newest_first(r for r in self.recipes.values() if self._matches(r, filters))

    def list_by_owner(self, owner_id: str) -> list[Recipe]:
        return self._newest_first(r for r in self.recipes.values() if r.owner_id == owner_id)

    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        return self.recipes.get(recipe_id)

    def get_owned_recipe(self, recipe_id: str, owner_id: str) -> Optional[Recipe]:
        recipe = self.recipes.get(recipe_id)
        if recipe is None or recipe.owner_id != owner_id:
            return None
        return recipe

    def create_recipe(self, owner_id: str, draft: RecipeDraft) -> Recipe:
        self._clock += 1
        created_at = _EPOCH + timedelta(minutes=self._clock)
        recipe = Recipe(
            id=str(uuid4()),
            owner_id=owner_id,
            title=draft.title,
            ingredients=draft.ingredients,
            instructions=draft.instructions,
            cooking_time=draft.cooking_time,
            difficulty=draft.difficulty,
            category=draft.category,
            image_url=draft.image_url,
            created_at=created_at,
            updated_at=created_at,
        )
        self.recipes[recipe.id] = recipe
        return recipe

    def update_recipe(self, recipe_id: str, owner_id: str, draft: RecipeDraft) -> Optional[Recipe]:
        current = self.get_owned_recipe(recipe_id, owner_id)
        if current is None:
            return None
        updated = replace(
            current,
            title=draft.title,
            ingredients=draft.ingredients,
            instructions=draft.instructions,
            cooking_time=draft.cooking_time,
            difficulty=draft.difficulty,
            category=draft.category,
            image_url=draft.image_url,
        )
        self.recipes[recipe_id] = updated
        return updated

    def delete_recipe(self, recipe_id: str, owner_id: str) -> bool:
        if self.get_owned_recipe(recipe_id, owner_id) is None:
            return False
        del self.recipes[recipe_id]
        return True


class InMemoryCommentRepository(CommentRepository):
    def __init__(self) -> None:
        self.comments: list[Comment] = []
        self.add_calls = 0

    def list_comments(self, recipe_id: str) -> list[Comment]:
        return [replace(c) for c in self.comments if c.recipe_id == recipe_id]

    def add_comment(self, recipe_id: str, user_id: str, content: str) -> Comment:
        self.add_calls += 1
        comment = Comment(
            id=str(uuid4()),
            recipe_id=recipe_id,
            user_id=user_id,
            content=content,
            created_at=_EPOCH + timedelta(seconds=len(self.comments)),
        )
        self.comments.append(comment)
        return comment


class InMemoryLikeRepository(LikeRepository):
    def __init__(self) -> None:
        self.likes: set[tuple[str, str]] = set()

    def count_likes(self, recipe_id: str) -> int:
        return sum(1 for liked_recipe, _ in self.likes if liked_recipe == recipe_id)

    def has_liked(self, recipe_id: str, user_id: str) -> bool:
        return (recipe_id, user_id) in self.likes

    def add_like(self, recipe_id: str, user_id: str) -> None:
        if (recipe_id, user_id) in self.likes:
            raise DuplicateRecordError("recipe_likes")
        self.likes.add((recipe_id, user_id))

    def remove_like(self, recipe_id: str, user_id: str) -> None:
        self.likes.discard((recipe_id, user_id))


class InMemoryStorageProvider(StorageProvider):
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail = False
        self.delay: Optional[float] = None

    def upload(self, object_key: str, data: bytes, content_type: str) -> str:
        if self.delay is not None:
            threading.Event().wait(self.delay)
        if self.fail:
            raise UploadError(object_key, "bucket not found")
        self.objects[object_key] = data
        return f"https://storage.example.com/recipe-images/{object_key}"


def make_backend() -> Backend:
    return Backend(
        auth=InMemoryAuthGateway(),
        profiles=InMemoryProfileRepository(),
        recipes=InMemoryRecipeRepository(),
        comments=InMemoryCommentRepository(),
        likes=InMemoryLikeRepository(),
        storage=InMemoryStorageProvider(),
    )


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "SUPABASE_URL": "https://example.supabase.co",
        "SUPABASE_ANON_KEY": "anon-key",
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def backend() -> Backend:
    return make_backend()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def runtime(backend: Backend, settings: Settings) -> AppRuntime:
    return create_runtime(settings, backend)


@pytest.fixture
def sign_in(backend: Backend) -> Callable:
    """Coroutine that starts a runtime and signs a fresh account in through it."""

    async def _sign_in(
        runtime: AppRuntime,
        email: str = "alice@example.com",
        password: str = "secret1",
        username: Optional[str] = "alice",
    ) -> Identity:
        identity = backend.auth.add_account(email, password)
        if username:
            backend.profiles.profiles[identity.id] = Profile(id=identity.id, username=username)
        await runtime.start()
        result = await runtime.auth.sign_in(email, password)
        assert result.ok, result.message
        # let the auth callback and the profile fetch it starts settle
        for _ in range(3):
            await asyncio.sleep(0.01)
        return identity

    return _sign_in
