"""Credential capability passed into the API client.

The session layer (login, token storage) lives outside this package; it
hands us an object that can report the current bearer token and be told
when the backend rejected it.
"""

from __future__ import annotations

from typing import Protocol


class CredentialProvider(Protocol):
    def current_credential(self) -> str | None:
        """Return the bearer token to send, or None for anonymous calls."""
        ...

    def on_unauthorized(self) -> None:
        """Called after a 401 so the session can evict the stored token."""
        ...


class StaticCredentials:
    """Holds a token in memory; a 401 clears it."""

    def __init__(self, token: str | None = None) -> None:
        self.token = token
        self.evicted = False

    def current_credential(self) -> str | None:
        return self.token

    def on_unauthorized(self) -> None:
        self.token = None
        self.evicted = True


class AnonymousCredentials:
    def current_credential(self) -> str | None:
        return None

    def on_unauthorized(self) -> None:
        pass
