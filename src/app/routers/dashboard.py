from __future__ import annotations

from fastapi import APIRouter, Depends

from src.app.deps import get_runtime, raise_for_result
from src.app.runtime import AppRuntime
from src.app.schemas.recipes import RecipeResponse
from src.app.views.dashboard import DashboardView

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=list[RecipeResponse])
async def dashboard(runtime: AppRuntime = Depends(get_runtime)) -> list[RecipeResponse]:
    view = DashboardView(runtime.recipes)
    try:
        result = await view.load()
    finally:
        view.close()
    raise_for_result(result)
    return [RecipeResponse.from_domain(recipe) for recipe in view.state.recipes]
