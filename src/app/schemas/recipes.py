# src/app/schemas/recipes.py
from __future__ import annotations

import base64
import binascii
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.app.domain.models import (
    ALL_CATEGORIES,
    ALL_DIFFICULTIES,
    Comment,
    ImageAttachment,
    ImageUpload,
    LikeState,
    Recipe,
    RecipeDraft,
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class RecipeResponse(BaseModel):
    id: str
    ownerId: str
    title: str
    ingredients: str
    instructions: str
    cookingTime: Optional[int] = None
    difficulty: Optional[Literal["Easy", "Medium", "Hard"]] = None
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    authorUsername: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_domain(cls, recipe: Recipe) -> "RecipeResponse":
        return cls(
            id=recipe.id,
            ownerId=recipe.owner_id,
            title=recipe.title,
            ingredients=recipe.ingredients,
            instructions=recipe.instructions,
            cookingTime=recipe.cooking_time,
            difficulty=recipe.difficulty.value if recipe.difficulty else None,
            category=recipe.category,
            imageUrl=recipe.image_url,
            authorUsername=recipe.author_username,
            createdAt=_iso(recipe.created_at),
            updatedAt=_iso(recipe.updated_at),
        )


class RecipeListQuery(BaseModel):
    search: str = ""
    category: str = ALL_CATEGORIES
    difficulty: str = ALL_DIFFICULTIES


class ImagePayload(BaseModel):
    """Image bytes sent inline as base64 with the recipe form."""
    data: str = Field(..., min_length=1)
    filename: str = "image"
    contentType: str = "image/jpeg"

    @field_validator("data")
    @classmethod
    def _decodable(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Image data must be base64 encoded")
        return value

    def to_upload(self) -> ImageUpload:
        return ImageUpload(
            data=base64.b64decode(self.data),
            filename=self.filename,
            content_type=self.contentType.lower(),
        )


class RecipeWrite(BaseModel):
    title: str = ""
    ingredients: str = ""
    instructions: str = ""
    cookingTime: Optional[int] = None
    difficulty: Optional[str] = None
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    image: Optional[ImagePayload] = None

    def to_draft(self) -> RecipeDraft:
        return RecipeDraft(
            title=self.title,
            ingredients=self.ingredients,
            instructions=self.instructions,
            cooking_time=self.cookingTime,
            difficulty=self.difficulty or None,
            category=self.category,
            image_url=self.imageUrl,
        )


class ImageAttachmentResponse(BaseModel):
    url: str
    fallback: bool = False
    preview: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_domain(cls, image: ImageAttachment) -> "ImageAttachmentResponse":
        return cls(url=image.url, fallback=image.fallback, preview=image.preview, message=image.message)


class SavedRecipeResponse(BaseModel):
    recipe: RecipeResponse
    image: Optional[ImageAttachmentResponse] = None
    message: Optional[str] = None


class CommentResponse(BaseModel):
    id: str
    recipeId: str
    userId: str
    content: str
    authorUsername: Optional[str] = None
    createdAt: Optional[str] = None

    @classmethod
    def from_domain(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            recipeId=comment.recipe_id,
            userId=comment.user_id,
            content=comment.content,
            authorUsername=comment.author_username,
            createdAt=_iso(comment.created_at),
        )


class CommentCreate(BaseModel):
    content: str = ""


class LikeStateResponse(BaseModel):
    recipeId: str
    count: int
    liked: bool

    @classmethod
    def from_domain(cls, like: LikeState) -> "LikeStateResponse":
        return cls(recipeId=like.recipe_id, count=like.count, liked=like.liked)


class RecipeDetailResponse(BaseModel):
    recipe: RecipeResponse
    like: Optional[LikeStateResponse] = None
    comments: list[CommentResponse] = Field(default_factory=list)
