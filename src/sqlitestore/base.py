"""Store interfaces consumed by session managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class Store(ABC):
    """Persistence backend for session payloads."""

    @abstractmethod
    def find(self, token: str) -> tuple[bytes | None, bool]:
        """Return ``(data, True)`` for a live session, else ``(None, False)``."""
        ...

    @abstractmethod
    def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        """Insert or replace the payload and expiry for a token."""
        ...

    @abstractmethod
    def delete(self, token: str) -> None:
        """Remove a session. Must not fail for unknown tokens."""
        ...


class IterableStore(Store):
    """Store that can also enumerate its live sessions."""

    @abstractmethod
    def all(self) -> dict[str, bytes]:
        """Return every unexpired session as a token to payload mapping."""
        ...
