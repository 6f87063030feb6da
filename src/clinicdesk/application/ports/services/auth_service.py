"""
Authentication interface for the ERP's token negotiation endpoints.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from ....domain.entities.session import Choice


class ErpAuthService(ABC):
    """Credential and scope negotiation against the ERP."""

    @abstractmethod
    async def login(self, user: str, password: str) -> Tuple[str, List[Choice]]:
        """Exchange credentials for a provisional token and the tenant list."""
        pass

    @abstractmethod
    async def list_roles(self, token: str, tenant_id: int) -> List[Choice]:
        pass

    @abstractmethod
    async def list_organizations(self, token: str, tenant_id: int, role_id: int) -> List[Choice]:
        pass

    @abstractmethod
    async def list_warehouses(
        self, token: str, tenant_id: int, role_id: int, organization_id: int
    ) -> List[Choice]:
        pass

    @abstractmethod
    async def finalize(
        self,
        token: str,
        tenant_id: int,
        role_id: int,
        organization_id: int,
        warehouse_id: int,
    ) -> str:
        """Exchange the complete selection for the final bearer token."""
        pass
