"""Session context and the negotiation states that build it."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class Choice:
    """One selectable candidate (tenant, role, organization or warehouse)."""

    id: int
    name: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Choice":
        return cls(id=int(data.get("id", 0)), name=str(data.get("name") or ""))


@dataclass(frozen=True)
class SessionContext:
    """Fully scoped selection the bearer token is bound to.

    Organization id ``0`` is the "all organizations" wildcard, so whether a
    field is set must be tested with ``is not None``.
    """

    tenant_id: Optional[int] = None
    tenant_name: str = ""
    role_id: Optional[int] = None
    role_name: str = ""
    organization_id: Optional[int] = None
    organization_name: str = ""
    warehouse_id: Optional[int] = None
    warehouse_name: str = ""

    @property
    def has_organization(self) -> bool:
        return self.organization_id is not None

    @property
    def has_warehouse(self) -> bool:
        return self.warehouse_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionContext":
        """Parse a persisted context; raises ``ValueError`` on incomplete data."""
        if not isinstance(data, dict):
            raise ValueError("Session context must be an object")
        for key in ("tenant_id", "role_id", "organization_id", "warehouse_id"):
            if data.get(key) is None:
                raise ValueError(f"Session context is missing {key}")
        return cls(
            tenant_id=int(data["tenant_id"]),
            tenant_name=str(data.get("tenant_name") or ""),
            role_id=int(data["role_id"]),
            role_name=str(data.get("role_name") or ""),
            organization_id=int(data["organization_id"]),
            organization_name=str(data.get("organization_name") or ""),
            warehouse_id=int(data["warehouse_id"]),
            warehouse_name=str(data.get("warehouse_name") or ""),
        )


@dataclass(frozen=True)
class SessionUser:
    """Operator signed in to the station."""

    name: str
    role: str = "user"
    id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionUser":
        if not isinstance(data, dict) or not data.get("name"):
            raise ValueError("Session user must have a name")
        return cls(name=str(data["name"]), role=str(data.get("role") or "user"), id=int(data.get("id") or 0))


# ---------------------------------------------------------------------------
# Negotiation states
# ---------------------------------------------------------------------------
# One variant per step. Each carries exactly what has been resolved so far,
# with the step it was reached from kept in ``base`` so that going back never
# needs to re-fetch anything.


@dataclass(frozen=True)
class Credentials:
    step = "credentials"

    error: Optional[str] = None


@dataclass(frozen=True)
class TenantSelection:
    step = "tenant"

    user: str
    token: str
    tenants: Tuple[Choice, ...]
    error: Optional[str] = None


@dataclass(frozen=True)
class RoleSelection:
    step = "role"

    base: TenantSelection
    tenant: Choice
    roles: Tuple[Choice, ...]
    error: Optional[str] = None


@dataclass(frozen=True)
class OrganizationSelection:
    step = "organization"

    base: RoleSelection
    role: Choice
    organizations: Tuple[Choice, ...]
    error: Optional[str] = None


@dataclass(frozen=True)
class WarehouseSelection:
    step = "warehouse"

    base: OrganizationSelection
    organization: Choice
    warehouses: Tuple[Choice, ...]
    error: Optional[str] = None

    def build_context(self, warehouse: Choice) -> SessionContext:
        role_step = self.base.base
        return SessionContext(
            tenant_id=role_step.tenant.id,
            tenant_name=role_step.tenant.name,
            role_id=self.base.role.id,
            role_name=self.base.role.name,
            organization_id=self.organization.id,
            organization_name=self.organization.name,
            warehouse_id=warehouse.id,
            warehouse_name=warehouse.name,
        )


@dataclass(frozen=True)
class Done:
    step = "done"

    token: str
    context: SessionContext
    user: SessionUser
    # None when the session was restored from disk
    base: Optional[WarehouseSelection] = None
    error: Optional[str] = None


LoginState = Union[
    Credentials,
    TenantSelection,
    RoleSelection,
    OrganizationSelection,
    WarehouseSelection,
    Done,
]

STEP_ORDER: Tuple[str, ...] = ("credentials", "tenant", "role", "organization", "warehouse", "done")


def with_error(state: LoginState, error: Optional[str]) -> LoginState:
    """Copy of ``state`` carrying ``error``."""
    return replace(state, error=error)


def previous_state(state: LoginState) -> LoginState:
    """State exactly one step back in the fixed sequence."""
    if isinstance(state, Credentials):
        raise ValueError("Already at the credentials step")
    if isinstance(state, TenantSelection):
        return Credentials()
    if isinstance(state, Done):
        return with_error(state.base, None) if state.base is not None else Credentials()
    return with_error(state.base, None)


def root_tenant_state(state: LoginState) -> Optional[TenantSelection]:
    """The tenant step a state descends from, if it is known."""
    current: Any = state
    while current is not None and not isinstance(current, TenantSelection):
        current = getattr(current, "base", None)
    return current
