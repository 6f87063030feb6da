"""Session negotiation use case.

Narrows a set of credentials down to one tenant, role, organization and
warehouse, then exchanges that selection for the bearer token every later
call runs under. Each step is an explicit state; see
``domain.entities.session`` for the variants.
"""

import logging
from typing import Callable, List, Optional, Sequence

from ...core.exceptions import AuthenticationError, NegotiationError, RecordStoreError
from ...domain.entities.session import (
    Choice,
    Credentials,
    Done,
    LoginState,
    OrganizationSelection,
    RoleSelection,
    SessionContext,
    SessionUser,
    TenantSelection,
    WarehouseSelection,
    previous_state,
    root_tenant_state,
    with_error,
)
from ..ports.services.auth_service import ErpAuthService
from ..ports.services.session_store import SessionStore
from ..services.lookup_cache import LookupCache

logger = logging.getLogger(__name__)

TokenSink = Callable[[Optional[str]], None]


def _find(candidates: Sequence[Choice], choice_id: int) -> Optional[Choice]:
    # An empty candidate list stands for the "0 / all" wildcard
    if not candidates and choice_id == 0:
        return Choice(id=0, name="*")
    return next((c for c in candidates if c.id == choice_id), None)


class SessionNegotiationUseCase:
    """State machine over the ERP's token negotiation endpoints."""

    def __init__(
        self,
        auth_service: ErpAuthService,
        session_store: SessionStore,
        lookup_cache: LookupCache,
        token_sink: TokenSink,
    ) -> None:
        self._auth = auth_service
        self._store = session_store
        self._lookup_cache = lookup_cache
        self._token_sink = token_sink
        self._state: LoginState = Credentials()
        self.available_organizations: List[Choice] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoginState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return isinstance(self._state, Done)

    @property
    def context(self) -> Optional[SessionContext]:
        return self._state.context if isinstance(self._state, Done) else None

    @property
    def user(self) -> Optional[SessionUser]:
        return self._state.user if isinstance(self._state, Done) else None

    @property
    def token(self) -> Optional[str]:
        if isinstance(self._state, Done):
            return self._state.token
        root = root_tenant_state(self._state)
        return root.token if root else None

    def require_context(self) -> SessionContext:
        """Current context; raises when no scoped session exists."""
        context = self.context
        if context is None:
            raise AuthenticationError("No active session")
        return context

    # ------------------------------------------------------------------
    # Forward transitions
    # ------------------------------------------------------------------

    async def authenticate(self, user: str, password: str) -> LoginState:
        """Exchange credentials for a provisional token and the tenant list."""
        if not (user or "").strip() or not password:
            self._state = Credentials(error="User name and password are required")
            return self._state

        try:
            token, tenants = await self._auth.login(user.strip(), password)
        except AuthenticationError as e:
            self._state = Credentials(error=e.message)
            return self._state
        except RecordStoreError as e:
            self._state = Credentials(error=e.detail)
            return self._state

        if not tenants:
            self._state = Credentials(error="No tenant is available for this user")
            return self._state

        self._state = TenantSelection(user=user.strip(), token=token, tenants=tuple(tenants))
        if len(tenants) == 1:
            return await self.select_tenant(tenants[0].id)
        return self._state

    async def select_tenant(self, tenant_id: int) -> LoginState:
        current = self._expect(TenantSelection)
        tenant = _find(current.tenants, tenant_id)
        if tenant is None:
            self._state = with_error(current, f"Unknown tenant {tenant_id}")
            return self._state

        try:
            roles = await self._auth.list_roles(current.token, tenant.id)
        except AuthenticationError as e:
            return await self.invalidate(e.message)
        except RecordStoreError as e:
            self._state = with_error(current, e.detail)
            return self._state

        if not roles:
            self._state = with_error(current, f"No role is available for {tenant.name or tenant.id}")
            return self._state

        self._state = RoleSelection(base=with_error(current, None), tenant=tenant, roles=tuple(roles))
        if len(roles) == 1:
            return await self.select_role(roles[0].id)
        return self._state

    async def select_role(self, role_id: int) -> LoginState:
        current = self._expect(RoleSelection)
        role = _find(current.roles, role_id)
        if role is None:
            self._state = with_error(current, f"Unknown role {role_id}")
            return self._state

        token = current.base.token
        try:
            organizations = await self._auth.list_organizations(token, current.tenant.id, role.id)
        except AuthenticationError as e:
            return await self.invalidate(e.message)
        except RecordStoreError as e:
            self._state = with_error(current, e.detail)
            return self._state

        self.available_organizations = list(organizations)
        self._state = OrganizationSelection(
            base=with_error(current, None), role=role, organizations=tuple(organizations)
        )
        if len(organizations) <= 1:
            return await self.select_organization(organizations[0].id if organizations else 0)
        return self._state

    async def select_organization(self, organization_id: int) -> LoginState:
        current = self._expect(OrganizationSelection)
        organization = _find(current.organizations, organization_id)
        if organization is None:
            self._state = with_error(current, f"Unknown organization {organization_id}")
            return self._state

        role_step = current.base
        try:
            warehouses = await self._auth.list_warehouses(
                role_step.base.token, role_step.tenant.id, current.role.id, organization.id
            )
        except AuthenticationError as e:
            return await self.invalidate(e.message)
        except RecordStoreError as e:
            self._state = with_error(current, e.detail)
            return self._state

        self._state = WarehouseSelection(
            base=with_error(current, None), organization=organization, warehouses=tuple(warehouses)
        )
        if len(warehouses) <= 1:
            return await self.select_warehouse(warehouses[0].id if warehouses else 0)
        return self._state

    async def select_warehouse(self, warehouse_id: int) -> LoginState:
        current = self._expect(WarehouseSelection)
        warehouse = _find(current.warehouses, warehouse_id)
        if warehouse is None:
            self._state = with_error(current, f"Unknown warehouse {warehouse_id}")
            return self._state
        return await self.finalize(warehouse)

    async def finalize(self, warehouse: Choice) -> LoginState:
        """Exchange the full selection for the final token and persist it."""
        current = self._expect(WarehouseSelection)
        context = current.build_context(warehouse)
        tenant_step = current.base.base.base

        try:
            final_token = await self._auth.finalize(
                tenant_step.token,
                context.tenant_id,
                context.role_id,
                context.organization_id,
                context.warehouse_id,
            )
        except AuthenticationError as e:
            return await self.invalidate(e.message)
        except RecordStoreError as e:
            self._state = with_error(current, e.detail)
            return self._state

        user = SessionUser(name=tenant_step.user, role=context.role_name)
        self._store.save(final_token, context.to_dict(), user.to_dict())
        self._token_sink(final_token)
        self._lookup_cache.clear()
        self._state = Done(token=final_token, context=context, user=user, base=with_error(current, None))
        logger.info(
            "Session established for %s (tenant=%s role=%s org=%s warehouse=%s)",
            user.name,
            context.tenant_id,
            context.role_id,
            context.organization_id,
            context.warehouse_id,
        )
        return self._state

    # ------------------------------------------------------------------
    # Backward transitions and teardown
    # ------------------------------------------------------------------

    def go_back(self) -> LoginState:
        """Move exactly one step back in the fixed sequence."""
        leaving_done = isinstance(self._state, Done)
        try:
            target = previous_state(self._state)
        except ValueError as e:
            raise NegotiationError("credentials", str(e)) from e

        if leaving_done:
            self._store.clear_context()
            self._token_sink(None)
            self._lookup_cache.clear()
        self._state = target
        return self._state

    def logout(self) -> LoginState:
        self._teardown()
        self._state = Credentials()
        logger.info("Session closed")
        return self._state

    def switch_context(self) -> LoginState:
        """Drop the scoped context and start over from the tenant step."""
        root = root_tenant_state(self._state)
        if root is None:
            return self.logout()
        self._store.clear_context()
        self._token_sink(None)
        self._lookup_cache.clear()
        self._state = with_error(root, None)
        return self._state

    async def invalidate(self, reason: str) -> LoginState:
        """Teardown after the ERP rejected the session."""
        logger.warning("Session invalidated: %s", reason)
        self._teardown()
        self._state = Credentials(error=reason)
        return self._state

    def restore(self) -> LoginState:
        """Resume a persisted session, discarding it when the context is unusable."""
        stored = self._store.load()
        if not stored.token:
            self._state = Credentials()
            return self._state

        try:
            context = SessionContext.from_dict(stored.context or {})
        except ValueError as e:
            logger.warning("Discarding persisted session: %s", e)
            self._teardown()
            self._state = Credentials()
            return self._state

        try:
            user = SessionUser.from_dict(stored.user or {})
        except ValueError:
            user = SessionUser(name="")

        self._token_sink(stored.token)
        self._state = Done(token=stored.token, context=context, user=user)
        logger.info("Restored session for tenant=%s org=%s", context.tenant_id, context.organization_id)
        return self._state

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _teardown(self) -> None:
        self._token_sink(None)
        self._store.clear()
        self._lookup_cache.clear()
        self.available_organizations = []

    def _expect(self, state_type):
        if not isinstance(self._state, state_type):
            raise NegotiationError(
                self._state.step,
                f"Cannot select at step '{state_type.step}' while at step '{self._state.step}'",
            )
        return self._state
