"""
Token negotiation against the ERP's auth endpoints.
"""

import logging
from typing import Any, List, Tuple

from ...application.ports.services.auth_service import ErpAuthService
from ...core.exceptions import RecordStoreError
from ...domain.entities.session import Choice
from .gateway import ErpGateway

logger = logging.getLogger(__name__)


def _choices(payload: Any, key: str) -> List[Choice]:
    if not isinstance(payload, dict):
        return []
    return [Choice.from_api(item) for item in payload.get(key) or [] if isinstance(item, dict)]


class ErpAuthGateway(ErpAuthService):
    """Uses the gateway's HTTP plumbing with the provisional token passed explicitly."""

    def __init__(self, gateway: ErpGateway) -> None:
        self._gateway = gateway

    @property
    def _path(self) -> str:
        return self._gateway.auth_path

    async def login(self, user: str, password: str) -> Tuple[str, List[Choice]]:
        # A 401 here means bad credentials, not an expired session
        payload = await self._gateway.request(
            "POST",
            f"{self._path}/tokens",
            json={"userName": user, "password": password},
            notify_unauthorized=False,
        )
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise RecordStoreError("Login response carried no token", detail="No token returned")
        tenants = _choices(payload, "clients")
        logger.info("Credentials accepted for %s with %d tenant(s)", user, len(tenants))
        return token, tenants

    async def list_roles(self, token: str, tenant_id: int) -> List[Choice]:
        payload = await self._gateway.request(
            "GET", f"{self._path}/roles", params={"client": tenant_id}, token=token
        )
        return _choices(payload, "roles")

    async def list_organizations(self, token: str, tenant_id: int, role_id: int) -> List[Choice]:
        payload = await self._gateway.request(
            "GET",
            f"{self._path}/organizations",
            params={"client": tenant_id, "role": role_id},
            token=token,
        )
        return _choices(payload, "organizations")

    async def list_warehouses(
        self, token: str, tenant_id: int, role_id: int, organization_id: int
    ) -> List[Choice]:
        payload = await self._gateway.request(
            "GET",
            f"{self._path}/warehouses",
            params={"client": tenant_id, "role": role_id, "organization": organization_id},
            token=token,
        )
        return _choices(payload, "warehouses")

    async def finalize(
        self,
        token: str,
        tenant_id: int,
        role_id: int,
        organization_id: int,
        warehouse_id: int,
    ) -> str:
        payload = await self._gateway.request(
            "PUT",
            f"{self._path}/tokens",
            json={
                "clientId": tenant_id,
                "roleId": role_id,
                "organizationId": organization_id,
                "warehouseId": warehouse_id,
            },
            token=token,
        )
        final_token = payload.get("token") if isinstance(payload, dict) else None
        if not final_token:
            raise RecordStoreError("Context response carried no token", detail="No token returned")
        return final_token
