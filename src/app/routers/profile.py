from __future__ import annotations

from fastapi import APIRouter, Depends

from src.app.deps import get_runtime, raise_for_result
from src.app.runtime import AppRuntime
from src.app.schemas.profile import ProfileResponse, ProfileUpdate
from src.app.views.profile import ProfileView

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse)
async def get_profile(runtime: AppRuntime = Depends(get_runtime)) -> ProfileResponse:
    view = ProfileView(runtime.profiles)
    try:
        result = await view.load()
    finally:
        view.close()
    raise_for_result(result)
    return ProfileResponse.from_domain(result.value)


@router.put("", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdate,
    runtime: AppRuntime = Depends(get_runtime),
) -> ProfileResponse:
    view = ProfileView(runtime.profiles)
    try:
        result = await view.save(payload.username, payload.fullName, payload.bio)
    finally:
        view.close()
    raise_for_result(result)
    return ProfileResponse.from_domain(result.value, message=result.message)
