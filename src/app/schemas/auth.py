# src/app/schemas/auth.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    # validated by the auth service so the messages match the forms
    email: str = ""
    password: str = Field(default="", repr=False)


class AuthMessage(BaseModel):
    message: Optional[str] = None
    userId: Optional[str] = None


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    username: Optional[str] = None
    fullName: Optional[str] = None
