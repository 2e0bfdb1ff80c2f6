# src/app/infra/auth/base.py
"""
Abstract interface for the authentication side of the backend gateway.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from src.app.domain.models import AuthEvent, AuthSession, Identity

AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]


class AuthGateway(ABC):
    """
    Authentication operations and the auth-state subscription.

    Implementations:
    - SupabaseAuthGateway: GoTrue through supabase-py
    """

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Optional[Identity]:
        """
        Register a new account. The account stays pending until the user
        confirms the email address.

        Returns:
            The pending identity when the gateway reports one
        """
        pass

    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Sign in with email and password.

        Raises:
            AuthenticationError: bad credentials or unconfirmed account
        """
        pass

    @abstractmethod
    def sign_out(self) -> None:
        pass

    @abstractmethod
    def get_session(self) -> Optional[AuthSession]:
        """Return the currently persisted session, if any."""
        pass

    @abstractmethod
    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """
        Subscribe to sign-in/sign-out/token-refresh notifications.

        The listener may be invoked from any thread.

        Returns:
            A callable that removes the subscription
        """
        pass
