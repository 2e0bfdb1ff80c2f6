from __future__ import annotations

import asyncio
import threading

from src.app.domain.errors import (
    AuthenticationError,
    GatewayUnavailableError,
    PermissionDeniedError,
    RecordNotFoundError,
    ValidationError,
)
from src.app.domain.models import AuthEvent, AuthSession, Identity
from src.app.infra.backend import Backend
from src.app.services.orchestrator import (
    NETWORK_ERROR_MESSAGE,
    FetchOrchestrator,
    FetchResult,
    FetchScope,
    FetchStatus,
    OperationKind,
)
from src.app.services.session_store import SessionStore


def _orchestrator(backend: Backend, **deadlines: float) -> FetchOrchestrator:
    store = SessionStore(backend.auth, backend.profiles, profile_timeout=1.0)
    return FetchOrchestrator(store, **deadlines)


def _slow(seconds: float, value: str = "done"):
    def _operation() -> str:
        threading.Event().wait(seconds)
        return value

    return _operation


class TestFetchResult:
    def test_success(self) -> None:
        result = FetchResult.success([1, 2], message="ok")
        assert result.ok
        assert result.value == [1, 2]
        assert not result.stale

    def test_failure_uses_default_message(self) -> None:
        result = FetchResult.failure(FetchStatus.TIMED_OUT)
        assert not result.ok
        assert result.message == "Request timed out. Please try again."

    def test_rejected(self) -> None:
        result = FetchResult.rejected(ValidationError("Title is required"))
        assert result.status is FetchStatus.INVALID
        assert result.message == "Title is required"


class TestFetchScope:
    def test_only_latest_ticket_is_current(self) -> None:
        scope = FetchScope("list")
        first = scope.issue()
        second = scope.issue()
        assert not scope.is_current(first)
        assert scope.is_current(second)

    def test_close_invalidates_everything(self) -> None:
        scope = FetchScope()
        ticket = scope.issue()
        scope.close()
        assert scope.closed
        assert not scope.is_current(ticket)


class TestSuspension:
    def test_waits_for_session_resolution(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            calls: list[str] = []

            def _operation() -> str:
                calls.append("called")
                return "value"

            task = asyncio.create_task(orchestrator.run(_operation, label="read"))
            await asyncio.sleep(0.02)
            assert not task.done()
            assert calls == []

            await orchestrator.session.initialize()
            result = await task

            assert result.ok
            assert result.value == "value"
            assert calls == ["called"]
            await orchestrator.session.teardown()

        asyncio.run(scenario())

    def test_auth_operations_do_not_wait(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            result = await orchestrator.run(lambda: "ok", label="sign in", requires_session=False)
            assert result.ok
            assert not orchestrator.session.resolved

        asyncio.run(scenario())

    def test_superseded_while_suspended_never_runs(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            scope = FetchScope()
            calls: list[str] = []

            first = asyncio.create_task(
                orchestrator.run(lambda: calls.append("first"), label="read", scope=scope)
            )
            await asyncio.sleep(0)
            scope.close()
            await orchestrator.session.initialize()
            result = await first

            assert result.stale
            assert calls == []
            await orchestrator.session.teardown()

        asyncio.run(scenario())


class TestIdentity:
    def test_run_as_user_requires_sign_in(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            await orchestrator.session.initialize()
            calls: list[Identity] = []

            result = await orchestrator.run_as_user(calls.append, label="write")

            assert result.status is FetchStatus.AUTH_REQUIRED
            assert result.message == "Please sign in to continue."
            assert calls == []
            await orchestrator.session.teardown()

        asyncio.run(scenario())

    def test_run_as_user_passes_identity(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            identity = backend.auth.add_account("alice@example.com", "secret1")
            await orchestrator.session.initialize()
            orchestrator.session.on_auth_state_change(AuthEvent.SIGNED_IN, AuthSession("t", identity))

            result = await orchestrator.run_as_user(lambda user: user.id, label="whoami")

            assert result.value == identity.id
            await orchestrator.session.teardown()

        asyncio.run(scenario())

    def test_run_for_viewer_allows_anonymous(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            await orchestrator.session.initialize()

            result = await orchestrator.run_for_viewer(lambda user: user is None, label="view")

            assert result.ok
            assert result.value is True
            await orchestrator.session.teardown()

        asyncio.run(scenario())


class TestDeadlines:
    def test_timeout_becomes_timed_out(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend, read_timeout=0.05)
            await orchestrator.session.initialize()

            result = await orchestrator.run(_slow(0.5), label="slow read")

            assert result.status is FetchStatus.TIMED_OUT
            assert result.message == "Request timed out. Please try again."
            await orchestrator.session.teardown()

        asyncio.run(scenario())

    def test_deadline_per_kind(self, backend: Backend) -> None:
        orchestrator = _orchestrator(backend, read_timeout=10, mutation_timeout=5, upload_timeout=7)
        assert orchestrator.deadline_for(OperationKind.READ) == 10
        assert orchestrator.deadline_for(OperationKind.MUTATION) == 5
        assert orchestrator.deadline_for(OperationKind.UPLOAD) == 7

    def test_explicit_timeout_overrides_kind(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend, read_timeout=10)
            await orchestrator.session.initialize()

            result = await orchestrator.run(_slow(0.5), label="slow read", timeout=0.05)

            assert result.status is FetchStatus.TIMED_OUT
            await orchestrator.session.teardown()

        asyncio.run(scenario())


class TestErrorTranslation:
    def _run_raising(self, backend: Backend, error: Exception, **kwargs) -> FetchResult:
        async def scenario() -> FetchResult:
            orchestrator = _orchestrator(backend)
            await orchestrator.session.initialize()

            def _operation() -> None:
                raise error

            result = await orchestrator.run(_operation, label="op", **kwargs)
            await orchestrator.session.teardown()
            return result

        return asyncio.run(scenario())

    def test_permission_denied_is_generic(self, backend: Backend) -> None:
        result = self._run_raising(backend, PermissionDeniedError("update_recipe", "policy recipes_owner"))
        assert result.status is FetchStatus.DENIED
        assert result.message == "You don't have permission to do that."

    def test_auth_failure_shows_gateway_message(self, backend: Backend) -> None:
        result = self._run_raising(backend, AuthenticationError("Invalid login credentials"))
        assert result.status is FetchStatus.AUTH_FAILED
        assert result.message == "Invalid login credentials"

    def test_network_failure(self, backend: Backend) -> None:
        result = self._run_raising(backend, GatewayUnavailableError("list", "connection reset"))
        assert result.status is FetchStatus.FAILED
        assert result.message == NETWORK_ERROR_MESSAGE

    def test_not_found_with_custom_message(self, backend: Backend) -> None:
        result = self._run_raising(
            backend,
            RecordNotFoundError("recipes", "r1"),
            messages={FetchStatus.NOT_FOUND: "Recipe not found."},
        )
        assert result.status is FetchStatus.NOT_FOUND
        assert result.message == "Recipe not found."

    def test_unexpected_error_becomes_failed(self, backend: Backend) -> None:
        # a row mapper hitting a malformed row
        result = self._run_raising(backend, KeyError("user_id"))
        assert result.status is FetchStatus.FAILED
        assert result.message == "Something went wrong. Please try again."

    def test_unexpected_error_with_custom_message(self, backend: Backend) -> None:
        result = self._run_raising(
            backend,
            RuntimeError("boom"),
            messages={FetchStatus.FAILED: "Failed to load recipes."},
        )
        assert result.status is FetchStatus.FAILED
        assert result.message == "Failed to load recipes."


class TestStaleResults:
    def test_last_issued_wins(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            await orchestrator.session.initialize()
            scope = FetchScope("list")

            first = asyncio.create_task(orchestrator.run(_slow(0.1, "old"), label="read", scope=scope))
            await asyncio.sleep(0.01)
            second = await orchestrator.run(lambda: "new", label="read", scope=scope)
            older = await first

            assert not second.stale
            assert second.value == "new"
            assert older.stale
            await orchestrator.session.teardown()

        asyncio.run(scenario())

    def test_closed_scope_marks_result_stale(self, backend: Backend) -> None:
        async def scenario() -> None:
            orchestrator = _orchestrator(backend)
            await orchestrator.session.initialize()
            scope = FetchScope("detail")

            task = asyncio.create_task(orchestrator.run(_slow(0.05), label="read", scope=scope))
            await asyncio.sleep(0.01)
            scope.close()
            result = await task

            assert result.stale
            await orchestrator.session.teardown()

        asyncio.run(scenario())
