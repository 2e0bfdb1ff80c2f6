from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx
from supabase import AuthError, Client

from src.app.domain.errors import AuthenticationError, GatewayUnavailableError
from src.app.domain.models import AuthEvent, AuthSession, Identity
from src.app.infra.auth.base import AuthGateway, AuthListener

logger = logging.getLogger(__name__)


def _auth_message(error: AuthError) -> str:
    return str(getattr(error, "message", None) or error)


def _to_identity(user: Any) -> Optional[Identity]:
    if user is None or not getattr(user, "id", None):
        return None
    return Identity(id=str(user.id), email=getattr(user, "email", None))


def _to_session(session: Any) -> Optional[AuthSession]:
    if session is None:
        return None
    identity = _to_identity(getattr(session, "user", None))
    if identity is None:
        return None
    return AuthSession(
        access_token=str(session.access_token),
        identity=identity,
        refresh_token=getattr(session, "refresh_token", None),
        expires_at=getattr(session, "expires_at", None),
    )


def _to_event(raw: object, session: Optional[AuthSession]) -> AuthEvent:
    try:
        return AuthEvent(str(raw))
    except ValueError:
        # e.g. MFA_CHALLENGE_VERIFIED: only the session payload matters downstream
        return AuthEvent.USER_UPDATED if session else AuthEvent.SIGNED_OUT


class SupabaseAuthGateway(AuthGateway):
    def __init__(self, client: Client):
        self._client = client

    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        try:
            response = self._client.auth.sign_up({"email": email, "password": password})
        except AuthError as error:
            raise AuthenticationError(_auth_message(error), getattr(error, "code", None)) from error
        except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
            raise GatewayUnavailableError("sign_up", str(error)) from error

        identity = _to_identity(getattr(response, "user", None))
        logger.info("Sign-up requested: user=%s", identity.id if identity else None)
        return identity

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as error:
            raise AuthenticationError(_auth_message(error), getattr(error, "code", None)) from error
        except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
            raise GatewayUnavailableError("sign_in", str(error)) from error

        session = _to_session(getattr(response, "session", None))
        if session is None:
            raise AuthenticationError("Sign in did not return a session")
        return session

    def sign_out(self) -> None:
        try:
            self._client.auth.sign_out()
        except AuthError as error:
            raise AuthenticationError(_auth_message(error), getattr(error, "code", None)) from error
        except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
            raise GatewayUnavailableError("sign_out", str(error)) from error

    def get_session(self) -> Optional[AuthSession]:
        try:
            return _to_session(self._client.auth.get_session())
        except AuthError as error:
            # expired refresh token and similar: treat as signed out
            logger.warning("Could not restore session: %s", _auth_message(error))
            return None
        except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
            raise GatewayUnavailableError("get_session", str(error)) from error

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        def _callback(event: object, raw_session: Any) -> None:
            session = _to_session(raw_session)
            listener(_to_event(event, session), session)

        subscription = self._client.auth.on_auth_state_change(_callback)
        return subscription.unsubscribe
