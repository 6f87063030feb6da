"""Local persistence adapters."""

from .session_file_store import SessionFileStore

__all__ = ["SessionFileStore"]
