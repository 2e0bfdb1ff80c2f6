"""
Sign-up, sign-in and sign-out.

These never wait for the session store: they are what resolves it. The
store learns about the outcome through the gateway's auth subscription.
"""
from __future__ import annotations

import logging
from typing import Optional

from src.app.domain.errors import ValidationError
from src.app.domain.models import AuthSession, Identity
from src.app.infra.auth.base import AuthGateway
from src.app.services.orchestrator import FetchOrchestrator, FetchResult, OperationKind

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

SIGN_UP_MESSAGE = "Check your email for a confirmation link!"
SIGN_IN_MESSAGE = "Sign in successful!"
SIGN_OUT_MESSAGE = "Signed out."


def _validate_credentials(email: str, password: str, *, signing_up: bool) -> str:
    normalized = (email or "").strip()
    if not normalized:
        raise ValidationError("Email is required", field="email")
    if "@" not in normalized:
        raise ValidationError("Please enter a valid email address", field="email")
    if not password:
        raise ValidationError("Password is required", field="password")
    if signing_up and len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
        )
    return normalized


class AuthService:
    def __init__(self, auth: AuthGateway, orchestrator: FetchOrchestrator):
        self._auth = auth
        self._orchestrator = orchestrator

    async def sign_up(self, email: str, password: str) -> FetchResult[Optional[Identity]]:
        try:
            normalized = _validate_credentials(email, password, signing_up=True)
        except ValidationError as error:
            return FetchResult.rejected(error)

        result = await self._orchestrator.run(
            lambda: self._auth.sign_up(normalized, password),
            label="sign up",
            kind=OperationKind.MUTATION,
            requires_session=False,
        )
        if result.ok:
            result.message = SIGN_UP_MESSAGE
        return result

    async def sign_in(self, email: str, password: str) -> FetchResult[AuthSession]:
        try:
            normalized = _validate_credentials(email, password, signing_up=False)
        except ValidationError as error:
            return FetchResult.rejected(error)

        result = await self._orchestrator.run(
            lambda: self._auth.sign_in(normalized, password),
            label="sign in",
            kind=OperationKind.MUTATION,
            requires_session=False,
        )
        if result.ok:
            result.message = SIGN_IN_MESSAGE
            logger.info("Signed in: user=%s", result.value.identity.id if result.value else None)
        return result

    async def sign_out(self) -> FetchResult[None]:
        result = await self._orchestrator.run(
            self._auth.sign_out,
            label="sign out",
            kind=OperationKind.MUTATION,
            requires_session=False,
        )
        if result.ok:
            result.message = SIGN_OUT_MESSAGE
        return result
