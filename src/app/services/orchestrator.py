# src/app/services/orchestrator.py
"""
Data fetch orchestrator.

Every read and write against the backend goes through `FetchOrchestrator`:
1. Suspend until the session store has resolved.
2. Run the blocking gateway call in a worker thread under a deadline.
3. Translate domain errors into a `FetchResult` with user-facing text.
4. Mark the result stale when the issuing view moved on or went away.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Mapping, Optional, TypeVar

from src.app.config import Settings
from src.app.domain.errors import (
    AuthenticationError,
    GatewayUnavailableError,
    NotSignedInError,
    OperationTimeoutError,
    PermissionDeniedError,
    RecipeAppError,
    RecordNotFoundError,
    UploadError,
    ValidationError,
)
from src.app.domain.models import Identity
from src.app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    AUTH_FAILED = "auth_failed"
    AUTH_REQUIRED = "auth_required"
    DENIED = "denied"
    NOT_FOUND = "not_found"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class OperationKind(str, Enum):
    READ = "read"
    MUTATION = "mutation"
    UPLOAD = "upload"


DEFAULT_MESSAGES: dict[FetchStatus, str] = {
    FetchStatus.AUTH_REQUIRED: "Please sign in to continue.",
    FetchStatus.DENIED: "You don't have permission to do that.",
    FetchStatus.NOT_FOUND: "Not found.",
    FetchStatus.TIMED_OUT: "Request timed out. Please try again.",
    FetchStatus.FAILED: "Something went wrong. Please try again.",
}
NETWORK_ERROR_MESSAGE = "Network error, please retry."


@dataclass
class FetchResult(Generic[T]):
    status: FetchStatus
    value: Optional[T] = None
    message: Optional[str] = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK

    @classmethod
    def success(cls, value: T, message: Optional[str] = None) -> "FetchResult[T]":
        return cls(status=FetchStatus.OK, value=value, message=message)

    @classmethod
    def failure(cls, status: FetchStatus, message: Optional[str] = None) -> "FetchResult[T]":
        return cls(status=status, message=message or DEFAULT_MESSAGES.get(status))

    @classmethod
    def rejected(cls, error: ValidationError) -> "FetchResult[T]":
        """Client-side validation failure; no network call was made."""
        return cls(status=FetchStatus.INVALID, message=str(error))


class FetchScope:
    """
    Issue order of the fetches started by one view.

    Only the most recently issued fetch may update view state, and nothing
    may after `close()`.
    """

    def __init__(self, name: str = "view"):
        self.name = name
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def issue(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, ticket: int) -> bool:
        return not self._closed and ticket == self._generation

    def close(self) -> None:
        self._closed = True


class FetchOrchestrator:
    def __init__(
        self,
        session: SessionStore,
        read_timeout: float = 10.0,
        mutation_timeout: float = 5.0,
        upload_timeout: float = 10.0,
    ):
        self._session = session
        self._deadlines = {
            OperationKind.READ: read_timeout,
            OperationKind.MUTATION: mutation_timeout,
            OperationKind.UPLOAD: upload_timeout,
        }

    @classmethod
    def from_settings(cls, session: SessionStore, settings: Settings) -> "FetchOrchestrator":
        return cls(
            session,
            read_timeout=settings.READ_TIMEOUT_SECONDS,
            mutation_timeout=settings.MUTATION_TIMEOUT_SECONDS,
            upload_timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        )

    @property
    def session(self) -> SessionStore:
        return self._session

    def deadline_for(self, kind: OperationKind) -> float:
        return self._deadlines[kind]

    async def run(
        self,
        operation: Callable[[], T],
        *,
        label: str,
        kind: OperationKind = OperationKind.READ,
        scope: Optional[FetchScope] = None,
        requires_session: bool = True,
        timeout: Optional[float] = None,
        messages: Optional[Mapping[FetchStatus, str]] = None,
    ) -> FetchResult[T]:
        """Run a gateway call that does not depend on who is signed in."""
        return await self._run(
            lambda _identity: operation(),
            label=label,
            kind=kind,
            scope=scope,
            requires_session=requires_session,
            needs_identity=False,
            timeout=timeout,
            messages=messages,
        )

    async def run_as_user(
        self,
        operation: Callable[[Identity], T],
        *,
        label: str,
        kind: OperationKind = OperationKind.READ,
        scope: Optional[FetchScope] = None,
        timeout: Optional[float] = None,
        messages: Optional[Mapping[FetchStatus, str]] = None,
    ) -> FetchResult[T]:
        """Run a gateway call on behalf of the signed-in user; AUTH_REQUIRED when signed out."""
        return await self._run(
            operation,
            label=label,
            kind=kind,
            scope=scope,
            requires_session=True,
            needs_identity=True,
            timeout=timeout,
            messages=messages,
        )

    async def run_for_viewer(
        self,
        operation: Callable[[Optional[Identity]], T],
        *,
        label: str,
        kind: OperationKind = OperationKind.READ,
        scope: Optional[FetchScope] = None,
        timeout: Optional[float] = None,
        messages: Optional[Mapping[FetchStatus, str]] = None,
    ) -> FetchResult[T]:
        """Run a gateway call that adapts to the viewer, who may be anonymous."""
        return await self._run(
            operation,
            label=label,
            kind=kind,
            scope=scope,
            requires_session=True,
            needs_identity=False,
            timeout=timeout,
            messages=messages,
        )

    async def _run(
        self,
        operation: Callable[[Optional[Identity]], T],
        *,
        label: str,
        kind: OperationKind,
        scope: Optional[FetchScope],
        requires_session: bool,
        needs_identity: bool,
        timeout: Optional[float],
        messages: Optional[Mapping[FetchStatus, str]],
    ) -> FetchResult[T]:
        ticket = scope.issue() if scope is not None else None

        if requires_session and not self._session.resolved:
            logger.debug("Suspending %s until the session resolves", label)
            await self._session.wait_until_resolved()
            if scope is not None and not scope.is_current(ticket):
                # superseded or closed while suspended: never started
                return FetchResult(status=FetchStatus.FAILED, stale=True)

        identity = self._session.current_user()
        if needs_identity and identity is None:
            result: FetchResult[T] = self._translate(NotSignedInError(), label, messages)
            return self._finish(result, scope, ticket)

        deadline = timeout if timeout is not None else self._deadlines[kind]
        try:
            value = await asyncio.wait_for(asyncio.to_thread(operation, identity), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %ss; outcome unknown", label, deadline)
            result = self._translate(OperationTimeoutError(label, deadline), label, messages)
        except RecipeAppError as error:
            result = self._translate(error, label, messages)
        except Exception:
            logger.exception("%s failed unexpectedly", label)
            message = (messages or {}).get(FetchStatus.FAILED) or DEFAULT_MESSAGES[FetchStatus.FAILED]
            result = FetchResult(status=FetchStatus.FAILED, message=message)
        else:
            result = FetchResult.success(value)

        return self._finish(result, scope, ticket)

    @staticmethod
    def _finish(
        result: FetchResult[T],
        scope: Optional[FetchScope],
        ticket: Optional[int],
    ) -> FetchResult[T]:
        if scope is not None and ticket is not None and not scope.is_current(ticket):
            result.stale = True
        return result

    def _translate(
        self,
        error: RecipeAppError,
        label: str,
        messages: Optional[Mapping[FetchStatus, str]],
    ) -> FetchResult[T]:
        status, message = _classify(error)
        if status is FetchStatus.FAILED:
            logger.error("%s failed: %s", label, error)
        else:
            logger.info("%s -> %s: %s", label, status.value, error)

        if messages and status in messages:
            message = messages[status]
        return FetchResult(status=status, message=message or DEFAULT_MESSAGES.get(status))


def _classify(error: RecipeAppError) -> tuple[FetchStatus, Optional[str]]:
    if isinstance(error, ValidationError):
        return FetchStatus.INVALID, str(error)
    if isinstance(error, AuthenticationError):
        return FetchStatus.AUTH_FAILED, str(error)
    if isinstance(error, NotSignedInError):
        return FetchStatus.AUTH_REQUIRED, str(error)
    if isinstance(error, PermissionDeniedError):
        # policy details stay in the logs
        return FetchStatus.DENIED, None
    if isinstance(error, RecordNotFoundError):
        return FetchStatus.NOT_FOUND, None
    if isinstance(error, OperationTimeoutError):
        return FetchStatus.TIMED_OUT, None
    if isinstance(error, (GatewayUnavailableError, UploadError)):
        return FetchStatus.FAILED, NETWORK_ERROR_MESSAGE
    return FetchStatus.FAILED, None
