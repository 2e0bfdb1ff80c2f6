# src/app/deps.py
from __future__ import annotations

import httpx
from fastapi import Depends, HTTPException, Request, status

from src.app.domain.models import Identity
from src.app.runtime import AppRuntime
from src.app.services.orchestrator import FetchResult, FetchStatus

HTTP_STATUS_BY_RESULT: dict[FetchStatus, int] = {
    FetchStatus.OK: status.HTTP_200_OK,
    FetchStatus.INVALID: status.HTTP_400_BAD_REQUEST,
    FetchStatus.AUTH_FAILED: status.HTTP_401_UNAUTHORIZED,
    FetchStatus.AUTH_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    FetchStatus.DENIED: status.HTTP_403_FORBIDDEN,
    FetchStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FetchStatus.TIMED_OUT: status.HTTP_504_GATEWAY_TIMEOUT,
    FetchStatus.FAILED: status.HTTP_502_BAD_GATEWAY,
}


def get_runtime(request: Request) -> AppRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service starting")
    return runtime


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


async def require_user(runtime: AppRuntime = Depends(get_runtime)) -> Identity:
    """The signed-in user, once the session has resolved."""
    await runtime.session.wait_until_resolved()
    identity = runtime.session.current_user()
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in to continue.",
        )
    return identity


def raise_for_result(result: FetchResult) -> None:
    """Raise the HTTP error matching a failed result; no-op when OK."""
    if result.ok:
        return
    raise HTTPException(
        status_code=HTTP_STATUS_BY_RESULT.get(result.status, status.HTTP_502_BAD_GATEWAY),
        detail=result.message,
    )
