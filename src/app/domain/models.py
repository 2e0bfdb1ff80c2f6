# src/app/domain/models.py
"""
Domain models for the recipe sharing app.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

ALL_CATEGORIES = "All Categories"
ALL_DIFFICULTIES = "All Difficulties"

KNOWN_CATEGORIES = (
    "Breakfast",
    "Lunch",
    "Dinner",
    "Dessert",
    "Vegetarian",
    "Quick & Easy",
    "Seafood",
    "Asian",
    "Italian",
    "Snack",
    "Beverage",
    "Other",
)


class AuthEvent(str, Enum):
    """Auth state change events delivered by the gateway subscription."""
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value: object) -> Optional["Difficulty"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        text = value.strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


@dataclass(frozen=True)
class Identity:
    """The signed-in user as known by the auth gateway."""
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    identity: Identity
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None


@dataclass(frozen=True)
class Profile:
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Consistent view of the session published to listeners."""
    identity: Optional[Identity]
    profile: Optional[Profile]
    resolved: bool


@dataclass
class Recipe:
    id: str
    owner_id: str
    title: str
    ingredients: str
    instructions: str
    cooking_time: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author_username: Optional[str] = None

    def with_author(self, username: Optional[str]) -> "Recipe":
        return replace(self, author_username=username or "Unknown")


@dataclass
class RecipeDraft:
    """Writable recipe fields; optional fields left as None are persisted as null."""
    title: str
    ingredients: str
    instructions: str
    cooking_time: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class RecipeFilters:
    search: str = ""
    category: str = ALL_CATEGORIES
    difficulty: str = ALL_DIFFICULTIES

    @property
    def search_term(self) -> Optional[str]:
        term = (self.search or "").strip()
        return term or None

    @property
    def category_filter(self) -> Optional[str]:
        value = (self.category or "").strip()
        if not value or value == ALL_CATEGORIES:
            return None
        return value

    @property
    def difficulty_filter(self) -> Optional[str]:
        value = (self.difficulty or "").strip()
        if not value or value == ALL_DIFFICULTIES:
            return None
        parsed = Difficulty.parse(value)
        # unknown values still narrow the result set (to nothing)
        return parsed.value if parsed else value

    @property
    def is_empty(self) -> bool:
        return (
            self.search_term is None
            and self.category_filter is None
            and self.difficulty_filter is None
        )


@dataclass
class Comment:
    id: str
    recipe_id: str
    user_id: str
    content: str
    created_at: Optional[datetime] = None
    author_username: Optional[str] = None


@dataclass(frozen=True)
class LikeState:
    """Like count and the current user's liked flag, as last read from the backend."""
    recipe_id: str
    count: int
    liked: bool


@dataclass(frozen=True)
class ImageUpload:
    data: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class ImageAttachment:
    """
    Outcome of attaching an image to a recipe.

    When `fallback` is True the upload did not succeed: `url` is the
    placeholder reference persisted with the record and `preview` is a local
    data URI the UI can render in the meantime.
    """
    url: str
    fallback: bool = False
    preview: Optional[str] = None
    message: Optional[str] = None
    object_key: Optional[str] = field(default=None, compare=False)
