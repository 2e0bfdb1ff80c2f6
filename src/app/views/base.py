# src/app/views/base.py
"""
Base class for page view models.

A view owns one `FetchScope` per independent piece of state it loads. Results
of superseded fetches, and of any fetch finishing after `close()`, come back
marked stale and are dropped without touching the view state.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from src.app.services.orchestrator import FetchResult, FetchScope


class ViewState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    loading: bool = False
    error: Optional[str] = None
    message: Optional[str] = None


class View:
    name = "view"

    def __init__(self) -> None:
        self._scopes: dict[str, FetchScope] = {}
        self._closed = False

    def scope(self, key: str = "main") -> FetchScope:
        if key not in self._scopes:
            scope = FetchScope(f"{self.name}:{key}")
            if self._closed:
                scope.close()
            self._scopes[key] = scope
        return self._scopes[key]

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop accepting results; in-flight fetches finish but are discarded."""
        self._closed = True
        for scope in self._scopes.values():
            scope.close()


def settle(state: ViewState, result: FetchResult) -> bool:
    """
    Record the outcome of a non-stale fetch on the common state fields.

    Returns:
        True if the result was OK
    """
    state.loading = False
    if result.ok:
        state.error = None
        if result.message:
            state.message = result.message
        return True
    state.error = result.message
    return False
