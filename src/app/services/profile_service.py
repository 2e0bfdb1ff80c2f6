from __future__ import annotations

import logging
from typing import Optional

from src.app.domain.errors import ValidationError
from src.app.domain.models import Identity, Profile
from src.app.infra.db.base import ProfileRepository
from src.app.services.orchestrator import (
    FetchOrchestrator,
    FetchResult,
    FetchScope,
    OperationKind,
)

logger = logging.getLogger(__name__)

PROFILE_SAVED_MESSAGE = "Profile updated successfully!"


def default_username(identity: Identity) -> str:
    """Local part of the email, or the user id when there is no email."""
    email = identity.email or ""
    local = email.split("@", 1)[0].strip()
    return local or identity.id


class ProfileService:
    """
    Reads and writes the signed-in user's profile row.

    After a successful write the session store re-reads the profile; it is
    never patched in place from here.
    """

    def __init__(self, profiles: ProfileRepository, orchestrator: FetchOrchestrator):
        self._profiles = profiles
        self._orchestrator = orchestrator

    async def load_profile(self, scope: Optional[FetchScope] = None) -> FetchResult[Profile]:
        created = False

        def _load(identity: Identity) -> Profile:
            nonlocal created
            profile = self._profiles.get_profile(identity.id)
            if profile is not None:
                return profile
            created = True
            return self._profiles.upsert_profile(
                Profile(id=identity.id, username=default_username(identity))
            )

        result = await self._orchestrator.run_as_user(_load, label="load profile", scope=scope)
        if result.ok and created:
            logger.info("Created default profile: user=%s", result.value.id)
            await self._orchestrator.session.refresh_profile()
        return result

    async def save_profile(
        self,
        username: str,
        full_name: Optional[str] = None,
        bio: Optional[str] = None,
        scope: Optional[FetchScope] = None,
    ) -> FetchResult[Profile]:
        name = (username or "").strip()
        if not name:
            return FetchResult.rejected(ValidationError("Username is required", field="username"))

        def _save(identity: Identity) -> Profile:
            return self._profiles.upsert_profile(
                Profile(
                    id=identity.id,
                    username=name,
                    full_name=(full_name or "").strip() or None,
                    bio=(bio or "").strip() or None,
                )
            )

        result = await self._orchestrator.run_as_user(
            _save,
            label="save profile",
            kind=OperationKind.MUTATION,
            scope=scope,
        )
        if result.ok:
            result.message = PROFILE_SAVED_MESSAGE
            await self._orchestrator.session.refresh_profile()
        return result
