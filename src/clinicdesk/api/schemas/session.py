"""
Pydantic schemas for the session negotiation endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ...domain.entities.session import (
    Done,
    LoginState,
    OrganizationSelection,
    RoleSelection,
    TenantSelection,
    WarehouseSelection,
)


class LoginRequest(BaseModel):
    user: str = Field(..., description="ERP user name")
    password: str = Field(..., description="ERP password")

    @field_validator("user")
    @classmethod
    def strip_user(cls, v: str) -> str:
        return v.strip()


class SelectRequest(BaseModel):
    id: int = Field(..., ge=0, description="Id of the chosen tenant, role, organization or warehouse")


class ChoiceView(BaseModel):
    id: int
    name: str


class SessionStateView(BaseModel):
    """Current negotiation step and what the operator can pick from."""

    step: str
    error: Optional[str] = None
    choices: List[ChoiceView] = Field(default_factory=list)
    context: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None


def describe_state(state: LoginState) -> SessionStateView:
    choices: tuple = ()
    if isinstance(state, TenantSelection):
        choices = state.tenants
    elif isinstance(state, RoleSelection):
        choices = state.roles
    elif isinstance(state, OrganizationSelection):
        choices = state.organizations
    elif isinstance(state, WarehouseSelection):
        choices = state.warehouses

    view = SessionStateView(
        step=state.step,
        error=state.error,
        choices=[ChoiceView(id=c.id, name=c.name) for c in choices],
    )
    if isinstance(state, Done):
        view.context = state.context.to_dict()
        view.user = state.user.to_dict()
    return view
