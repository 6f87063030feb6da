"""
Session persistence interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class StoredSession:
    """Raw persisted session; the context is validated by the caller."""

    token: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None


class SessionStore(ABC):
    """Keeps the bearer token and its context across process restarts."""

    @abstractmethod
    def load(self) -> StoredSession:
        """Return whatever was persisted; empty fields when nothing was."""
        pass

    @abstractmethod
    def save(self, token: str, context: Dict[str, Any], user: Optional[Dict[str, Any]]) -> None:
        pass

    @abstractmethod
    def clear_context(self) -> None:
        """Forget the scoped context but keep the token."""
        pass

    @abstractmethod
    def clear(self) -> None:
        pass
