from __future__ import annotations

from typing import Optional

from src.app.domain.models import Profile
from src.app.services.orchestrator import FetchResult
from src.app.services.profile_service import ProfileService
from src.app.views.base import View, ViewState, settle


class ProfileState(ViewState):
    profile: Optional[Profile] = None


class ProfileView(View):
    name = "profile"

    def __init__(self, profiles: ProfileService):
        super().__init__()
        self._profiles = profiles
        self.state = ProfileState()

    async def load(self) -> FetchResult[Profile]:
        self.state.loading = True
        result = await self._profiles.load_profile(scope=self.scope())
        if result.stale:
            return result
        if settle(self.state, result):
            self.state.profile = result.value
        return result

    async def save(
        self,
        username: str,
        full_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> FetchResult[Profile]:
        self.state.loading = True
        result = await self._profiles.save_profile(username, full_name, bio, scope=self.scope("save"))
        if result.stale:
            return result
        if settle(self.state, result):
            self.state.profile = result.value
        return result
