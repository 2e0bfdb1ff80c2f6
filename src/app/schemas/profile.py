from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from src.app.domain.models import Profile


class ProfileResponse(BaseModel):
    id: str
    username: Optional[str] = None
    fullName: Optional[str] = None
    bio: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_domain(cls, profile: Profile, message: Optional[str] = None) -> "ProfileResponse":
        return cls(
            id=profile.id,
            username=profile.username,
            fullName=profile.full_name,
            bio=profile.bio,
            message=message,
        )


class ProfileUpdate(BaseModel):
    username: str = ""
    fullName: Optional[str] = None
    bio: Optional[str] = None
