"""
JSON file persistence for the negotiated session.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ...application.ports.services.session_store import SessionStore, StoredSession

logger = logging.getLogger(__name__)


class SessionFileStore(SessionStore):
    """Keeps ``{token, context, user}`` in one JSON file."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Discarding unreadable session file %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self._path)

    def load(self) -> StoredSession:
        data = self._read()
        context = data.get("context")
        user = data.get("user")
        return StoredSession(
            token=data.get("token") or None,
            context=context if isinstance(context, dict) else None,
            user=user if isinstance(user, dict) else None,
        )

    def save(self, token: str, context: Dict[str, Any], user: Optional[Dict[str, Any]]) -> None:
        self._write({"token": token, "context": context, "user": user})

    def clear_context(self) -> None:
        data = self._read()
        if not data:
            return
        data.pop("context", None)
        self._write(data)

    def clear(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
