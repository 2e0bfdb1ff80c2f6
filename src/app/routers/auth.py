from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.app.deps import get_runtime, raise_for_result, require_user
from src.app.domain.models import Identity
from src.app.runtime import AppRuntime
from src.app.schemas.auth import AuthMessage, Credentials, CurrentUser

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthMessage, status_code=status.HTTP_201_CREATED)
async def sign_up(payload: Credentials, runtime: AppRuntime = Depends(get_runtime)) -> AuthMessage:
    result = await runtime.auth.sign_up(payload.email, payload.password)
    raise_for_result(result)
    return AuthMessage(message=result.message, userId=result.value.id if result.value else None)


@router.post("/signin", response_model=AuthMessage)
async def sign_in(payload: Credentials, runtime: AppRuntime = Depends(get_runtime)) -> AuthMessage:
    result = await runtime.auth.sign_in(payload.email, payload.password)
    raise_for_result(result)
    return AuthMessage(message=result.message, userId=result.value.identity.id)


@router.post("/signout", response_model=AuthMessage)
async def sign_out(runtime: AppRuntime = Depends(get_runtime)) -> AuthMessage:
    result = await runtime.auth.sign_out()
    raise_for_result(result)
    return AuthMessage(message=result.message)


@router.get("/me", response_model=CurrentUser)
async def me(
    user: Identity = Depends(require_user),
    runtime: AppRuntime = Depends(get_runtime),
) -> CurrentUser:
    profile = runtime.session.current_profile()
    return CurrentUser(
        id=user.id,
        email=user.email,
        username=profile.username if profile else None,
        fullName=profile.full_name if profile else None,
    )
