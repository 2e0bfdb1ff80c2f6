# src/app/services/session_store.py
"""
Session store: the single live view of who is signed in and their profile.

One instance per running application. It is written only by `initialize()`,
the auth-state subscription and `refresh_profile()`, always on the event-loop
thread; every page reads it.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from src.app.domain.errors import GatewayError
from src.app.domain.models import AuthEvent, AuthSession, Identity, Profile, SessionSnapshot
from src.app.infra.auth.base import AuthGateway
from src.app.infra.db.base import ProfileRepository

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]

DEFAULT_PROFILE_TIMEOUT_SECONDS = 10.0


class SessionStore:
    """
    Mirrors the gateway's auth state and caches the signed-in user's profile.

    Invariants:
    - a published identity is never paired with another user's profile
    - after a sign-out is processed, `current_user()` is None even if a
      profile fetch for the previous user is still in flight
    - "identity present, profile None" is a valid, non-fatal state
    """

    def __init__(
        self,
        auth: AuthGateway,
        profiles: ProfileRepository,
        profile_timeout: float = DEFAULT_PROFILE_TIMEOUT_SECONDS,
    ):
        self._auth = auth
        self._profiles = profiles
        self._profile_timeout = profile_timeout

        self._identity: Optional[Identity] = None
        self._profile: Optional[Profile] = None
        self._generation = 0

        self._resolved = asyncio.Event()
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._profile_task: Optional[asyncio.Task[None]] = None
        self._listeners: list[SessionListener] = []

    @property
    def resolved(self) -> bool:
        return self._resolved.is_set()

    def current_user(self) -> Optional[Identity]:
        return self._identity

    def current_profile(self) -> Optional[Profile]:
        return self._profile

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            identity=self._identity,
            profile=self._profile,
            resolved=self.resolved,
        )

    async def wait_until_resolved(self) -> None:
        await self._resolved.wait()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def initialize(self) -> None:
        """
        Restore any existing session, fetch its profile and start listening
        for auth changes. Safe to call more than once; only the first call
        does the work.
        """
        async with self._init_lock:
            if self._initialized:
                return

            self._loop = asyncio.get_running_loop()
            # subscribe before restoring so no event between the two is lost
            self._unsubscribe = self._auth.on_auth_state_change(self._dispatch)

            start_generation = self._generation
            try:
                try:
                    session = await asyncio.to_thread(self._auth.get_session)
                except GatewayError as error:
                    logger.warning("Could not restore session, starting signed out: %s", error)
                    session = None
                except Exception:
                    logger.exception("Unexpected error restoring session, starting signed out")
                    session = None

                # an auth event that arrived meanwhile is newer than the restored session
                if self._generation == start_generation:
                    self._publish_identity(session.identity if session else None)
                    if self._identity is not None:
                        await self._fetch_profile(self._identity, self._generation)
            finally:
                # resolve even when the restore itself blew up
                self._initialized = True
                self._mark_resolved()
            logger.info(
                "Session store initialized: user=%s",
                self._identity.id if self._identity else None,
            )

    def on_auth_state_change(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        """
        Apply an auth state change. Must run on the event-loop thread.

        Identity and profile change in one synchronous step; the profile of
        a new identity is fetched afterwards and only applied if no newer
        change happened in between.
        """
        identity = session.identity if session else None
        logger.info("Auth state change: event=%s, user=%s", event.value, identity.id if identity else None)

        self._publish_identity(identity)
        if identity is not None and self._loop is not None:
            self._profile_task = self._loop.create_task(
                self._fetch_profile(identity, self._generation),
                name="session-profile-fetch",
            )
        self._mark_resolved()

    async def refresh_profile(self) -> Optional[Profile]:
        """Re-read the current user's profile; the only update path for profile edits."""
        identity = self._identity
        if identity is None:
            return None
        await self._fetch_profile(identity, self._generation)
        return self._profile

    async def teardown(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        task = self._cancel_profile_fetch()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

        self._listeners.clear()
        self._initialized = False
        logger.info("Session store torn down")

    def _dispatch(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self.on_auth_state_change(event, session)
        else:
            # gateway callbacks fire on worker threads during sign-in/out
            loop.call_soon_threadsafe(self.on_auth_state_change, event, session)

    def _publish_identity(self, identity: Optional[Identity]) -> None:
        previous = self._identity
        same_user = (
            identity is not None and previous is not None and identity.id == previous.id
        )

        self._cancel_profile_fetch()
        self._generation += 1
        self._identity = identity
        if not same_user:
            self._profile = None
        self._notify()

    async def _fetch_profile(self, identity: Identity, generation: int) -> None:
        try:
            profile = await asyncio.wait_for(
                asyncio.to_thread(self._profiles.get_profile, identity.id),
                timeout=self._profile_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Profile fetch timed out: user=%s", identity.id)
            return
        except GatewayError as error:
            logger.warning("Profile fetch failed: user=%s, error=%s", identity.id, error)
            return
        except Exception:
            logger.exception("Unexpected error fetching profile: user=%s", identity.id)
            return

        if generation != self._generation:
            logger.debug("Discarding stale profile for user=%s", identity.id)
            return

        if profile is None:
            logger.warning("No profile found: user=%s", identity.id)
        self._profile = profile
        self._notify()

    def _cancel_profile_fetch(self) -> Optional[asyncio.Task[None]]:
        task = self._profile_task
        self._profile_task = None
        if task is None or task.done():
            return None
        if task is asyncio.current_task():
            return None
        task.cancel()
        return task

    def _mark_resolved(self) -> None:
        if not self._resolved.is_set():
            self._resolved.set()
            self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
