"""
Service ports.
"""

from .auth_service import ErpAuthService
from .record_store import RecordStore
from .session_store import SessionStore, StoredSession

__all__ = ["RecordStore", "ErpAuthService", "SessionStore", "StoredSession"]
