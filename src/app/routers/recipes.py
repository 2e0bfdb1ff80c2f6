# src/app/routers/recipes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from src.app.deps import get_runtime, raise_for_result
from src.app.domain.models import RecipeFilters
from src.app.runtime import AppRuntime
from src.app.schemas.recipes import (
    CommentCreate,
    CommentResponse,
    ImageAttachmentResponse,
    LikeStateResponse,
    RecipeDetailResponse,
    RecipeListQuery,
    RecipeResponse,
    RecipeWrite,
    SavedRecipeResponse,
)
from src.app.services.orchestrator import FetchResult
from src.app.services.recipe_service import SavedRecipe
from src.app.views.recipe_detail import RecipeDetailView
from src.app.views.recipe_editor import RecipeEditorView
from src.app.views.recipe_list import RecipeListView

router = APIRouter(prefix="/recipes", tags=["recipes"])


def _saved_response(result: FetchResult[SavedRecipe]) -> SavedRecipeResponse:
    saved = result.value
    return SavedRecipeResponse(
        recipe=RecipeResponse.from_domain(saved.recipe),
        image=ImageAttachmentResponse.from_domain(saved.image) if saved.image else None,
        message=result.message,
    )


def _detail_view(runtime: AppRuntime, recipe_id: str) -> RecipeDetailView:
    return RecipeDetailView(recipe_id, runtime.recipes, runtime.comments, runtime.likes)


@router.get("", response_model=list[RecipeResponse])
async def list_recipes(
    query: RecipeListQuery = Depends(),
    runtime: AppRuntime = Depends(get_runtime),
) -> list[RecipeResponse]:
    view = RecipeListView(runtime.recipes)
    try:
        result = await view.refresh(
            RecipeFilters(search=query.search, category=query.category, difficulty=query.difficulty)
        )
    finally:
        view.close()
    raise_for_result(result)
    return [RecipeResponse.from_domain(recipe) for recipe in view.state.recipes]


@router.post("", response_model=SavedRecipeResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    payload: RecipeWrite,
    runtime: AppRuntime = Depends(get_runtime),
) -> SavedRecipeResponse:
    view = RecipeEditorView(runtime.recipes)
    try:
        result = await view.create(
            payload.to_draft(),
            image=payload.image.to_upload() if payload.image else None,
        )
    finally:
        view.close()
    raise_for_result(result)
    return _saved_response(result)


@router.get("/{recipe_id}", response_model=RecipeDetailResponse)
async def get_recipe(recipe_id: str, runtime: AppRuntime = Depends(get_runtime)) -> RecipeDetailResponse:
    view = _detail_view(runtime, recipe_id)
    try:
        result = await view.load()
    finally:
        view.close()
    raise_for_result(result)

    state = view.state
    return RecipeDetailResponse(
        recipe=RecipeResponse.from_domain(state.recipe),
        like=LikeStateResponse.from_domain(state.like) if state.like else None,
        comments=[CommentResponse.from_domain(comment) for comment in state.comments],
    )


@router.put("/{recipe_id}", response_model=SavedRecipeResponse)
async def update_recipe(
    recipe_id: str,
    payload: RecipeWrite,
    runtime: AppRuntime = Depends(get_runtime),
) -> SavedRecipeResponse:
    view = RecipeEditorView(runtime.recipes)
    view.state.recipe_id = recipe_id
    try:
        result = await view.save(
            payload.to_draft(),
            image=payload.image.to_upload() if payload.image else None,
        )
    finally:
        view.close()
    raise_for_result(result)
    return _saved_response(result)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(recipe_id: str, runtime: AppRuntime = Depends(get_runtime)) -> Response:
    result = await runtime.recipes.delete_recipe(recipe_id)
    raise_for_result(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{recipe_id}/comments", response_model=list[CommentResponse])
async def list_comments(recipe_id: str, runtime: AppRuntime = Depends(get_runtime)) -> list[CommentResponse]:
    result = await runtime.comments.list_comments(recipe_id)
    raise_for_result(result)
    return [CommentResponse.from_domain(comment) for comment in result.value]


@router.post(
    "/{recipe_id}/comments",
    response_model=list[CommentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def post_comment(
    recipe_id: str,
    payload: CommentCreate,
    runtime: AppRuntime = Depends(get_runtime),
) -> list[CommentResponse]:
    """Post a comment and return the refreshed thread."""
    view = _detail_view(runtime, recipe_id)
    try:
        result = await view.post_comment(payload.content)
    finally:
        view.close()
    raise_for_result(result)
    thread = list(view.state.comments)
    posted = result.value
    if all(comment.id != posted.id for comment in thread):
        # the re-read failed or lagged; the write itself succeeded
        thread.append(posted)
    return [CommentResponse.from_domain(comment) for comment in thread]


@router.get("/{recipe_id}/like", response_model=LikeStateResponse)
async def get_like(recipe_id: str, runtime: AppRuntime = Depends(get_runtime)) -> LikeStateResponse:
    result = await runtime.likes.get_like_state(recipe_id)
    raise_for_result(result)
    return LikeStateResponse.from_domain(result.value)


@router.post("/{recipe_id}/like", response_model=LikeStateResponse)
async def toggle_like(recipe_id: str, runtime: AppRuntime = Depends(get_runtime)) -> LikeStateResponse:
    result = await runtime.likes.toggle_like(recipe_id)
    raise_for_result(result)
    return LikeStateResponse.from_domain(result.value)
