"""
Record gateway for the ERP REST API.

Every call against the ERP goes through ``ErpGateway``. It owns the bearer
token and the HTTP session, and on a 401 it tears the local session down via
the registered callback before raising ``AuthenticationError``.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import aiohttp

from ...application.ports.services.record_store import RecordStore
from ...core.exceptions import AuthenticationError, RecordStoreError

logger = logging.getLogger(__name__)

UnauthorizedCallback = Callable[[str], Union[None, Awaitable[None]]]


def _error_detail(payload: Any, fallback: str) -> str:
    """Server-provided reason from an error body, else ``fallback``."""
    if isinstance(payload, dict):
        for key in ("detail", "title", "message", "error"):
            value = payload.get(key)
            if value:
                return str(value)
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return fallback


class ErpGateway(RecordStore):
    """aiohttp-backed client for the ERP's generic model endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        models_path: str = "/api/v1/models",
        auth_path: str = "/api/v1/auth",
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._models_path = models_path
        self.auth_path = auth_path
        self._session = session
        self._owns_session = session is None
        self._token: Optional[str] = None
        self._on_unauthorized: Optional[UnauthorizedCallback] = None

    # ------------------------------------------------------------------
    # Session plumbing
    # ------------------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def set_unauthorized_handler(self, callback: Optional[UnauthorizedCallback]) -> None:
        """Register the teardown invoked whenever the ERP answers 401."""
        self._on_unauthorized = callback

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout, headers={"Content-Type": "application/json"}
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _handle_unauthorized(self, reason: str) -> None:
        self._token = None
        if self._on_unauthorized is None:
            return
        result = self._on_unauthorized(reason)
        if result is not None:
            await result

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        notify_unauthorized: bool = True,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Args:
            method: HTTP verb
            path: Path below the base URL
            params: Query parameters; ``None`` values are dropped
            json: Request body
            token: Bearer token overriding the installed one
            notify_unauthorized: Whether a 401 tears the local session down

        Raises:
            AuthenticationError: The ERP answered 401
            RecordStoreError: Any other non-2xx answer or a transport failure
        """
        url = f"{self._base_url}{path}"
        headers: Dict[str, str] = {}
        bearer = token or self._token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}

        try:
            async with self._get_session().request(
                method, url, params=query or None, json=json, headers=headers
            ) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = await response.text()
                status = response.status
        except aiohttp.ClientError as e:
            logger.error("ERP request failed: %s %s: %s", method, path, e)
            raise RecordStoreError(f"{method} {path} failed", detail=str(e)) from e
        except asyncio.TimeoutError as e:
            logger.error("ERP request timed out: %s %s", method, path)
            raise RecordStoreError(f"{method} {path} timed out", detail="Request timed out") from e

        if status == 401:
            reason = _error_detail(payload, "Session expired, please sign in again")
            logger.warning("ERP rejected the session on %s %s", method, path)
            if notify_unauthorized:
                await self._handle_unauthorized(reason)
            raise AuthenticationError(reason, {"path": path})
        if status >= 400:
            detail = _error_detail(payload, f"HTTP {status}")
            logger.warning("ERP error %s on %s %s: %s", status, method, path, detail)
            raise RecordStoreError(f"{method} {path} returned {status}", status=status, detail=detail)
        return payload if payload != "" else {}

    # ------------------------------------------------------------------
    # Record verbs
    # ------------------------------------------------------------------

    def _collection_path(self, collection: str, record_id: Optional[int] = None) -> str:
        path = f"{self._models_path}/{collection}"
        if record_id is not None:
            path = f"{path}/{int(record_id)}"
        return path

    async def list(
        self,
        collection: str,
        filter: Optional[str] = None,
        order_by: Optional[str] = None,
        top: Optional[int] = None,
        expand: Optional[str] = None,
        select: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            "$filter": filter,
            "$orderby": order_by,
            "$top": top,
            "$expand": expand,
            "$select": select,
        }
        payload = await self.request("GET", self._collection_path(collection), params=params)
        if isinstance(payload, dict):
            return list(payload.get("records") or [])
        return []

    async def get(self, collection: str, record_id: int) -> Dict[str, Any]:
        payload = await self.request("GET", self._collection_path(collection, record_id))
        return payload if isinstance(payload, dict) else {}

    async def create(self, collection: str, values: Dict[str, Any]) -> Dict[str, Any]:
        payload = await self.request("POST", self._collection_path(collection), json=values)
        return payload if isinstance(payload, dict) else {}

    async def update(self, collection: str, record_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        payload = await self.request(
            "PUT", self._collection_path(collection, record_id), json=values
        )
        return payload if isinstance(payload, dict) else {}

    async def delete(self, collection: str, record_id: int) -> None:
        await self.request("DELETE", self._collection_path(collection, record_id))
