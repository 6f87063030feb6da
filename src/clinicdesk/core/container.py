"""
Dependency injection container for ClinicDesk.

This module provides a lightweight dependency injection container and the
wiring that binds the ERP adapters to the use cases.
"""

from typing import Any, Callable, Dict, Optional

from .config import Settings, get_settings
from .exceptions import ConfigurationError


class Container:
    """Lightweight dependency injection container."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._singletons: Dict[str, Any] = {}
        self.settings = settings or get_settings()

    def register_singleton(self, name: str, instance: Any) -> None:
        """Register a singleton instance."""
        self._singletons[name] = instance

    def register_factory(self, name: str, factory: Callable[[], Any]) -> None:
        """Register a factory; its first result is cached as a singleton."""
        self._factories[name] = factory

    def get(self, name: str) -> Any:
        """Get a service by name."""
        if name in self._singletons:
            return self._singletons[name]

        if name in self._factories:
            instance = self._factories[name]()
            self._singletons[name] = instance
            return instance

        raise ConfigurationError(f"Service '{name}' not found")


class ServiceNames:
    """Service names used throughout the application."""

    SETTINGS = "settings"
    RECORD_STORE = "record_store"
    AUTH_SERVICE = "auth_service"
    SESSION_STORE = "session_store"
    STATUS_LEDGER = "status_ledger"
    LOOKUP_CACHE = "lookup_cache"
    SESSION = "session_negotiation"
    REGISTRATION = "registration_workflow"
    CONSULTATION = "consultation"
    DISPENSE = "dispense_pipeline"
    CHECKOUT = "checkout"


def _discard_token(token: Optional[str]) -> None:
    return None


def build_container(
    settings: Optional[Settings] = None,
    *,
    record_store: Any = None,
    auth_service: Any = None,
    session_store: Any = None,
) -> Container:
    """Wire adapters and use cases; any adapter may be supplied by the caller."""
    # Imported here so that importing core never pulls in the adapters
    from ..adapters.erp import ErpAuthGateway, ErpGateway
    from ..adapters.storage import SessionFileStore
    from ..application.services import LookupCache, StatusLedger
    from ..application.use_cases import (
        CheckoutUseCase,
        ConsultationUseCase,
        DispensePipelineUseCase,
        RegistrationWorkflowUseCase,
        SessionNegotiationUseCase,
    )

    container = Container(settings)
    settings = container.settings
    container.register_singleton(ServiceNames.SETTINGS, settings)

    if record_store is None:
        record_store = ErpGateway(
            settings.erp.base_url,
            timeout=settings.erp.request_timeout,
            models_path=settings.erp.models_path,
            auth_path=settings.erp.auth_path,
        )
    if auth_service is None:
        if not isinstance(record_store, ErpGateway):
            raise ConfigurationError("An auth service is required with a custom record store")
        auth_service = ErpAuthGateway(record_store)
    if session_store is None:
        session_store = SessionFileStore(settings.session.storage_path)

    container.register_singleton(ServiceNames.RECORD_STORE, record_store)
    container.register_singleton(ServiceNames.AUTH_SERVICE, auth_service)
    container.register_singleton(ServiceNames.SESSION_STORE, session_store)
    container.register_factory(ServiceNames.STATUS_LEDGER, lambda: StatusLedger(record_store))
    container.register_factory(ServiceNames.LOOKUP_CACHE, lambda: LookupCache(record_store))

    container.register_factory(
        ServiceNames.SESSION,
        lambda: SessionNegotiationUseCase(
            auth_service,
            session_store,
            container.get(ServiceNames.LOOKUP_CACHE),
            getattr(record_store, "set_token", _discard_token),
        ),
    )
    container.register_factory(
        ServiceNames.REGISTRATION,
        lambda: RegistrationWorkflowUseCase(
            record_store,
            container.get(ServiceNames.STATUS_LEDGER),
            container.get(ServiceNames.LOOKUP_CACHE),
            container.get(ServiceNames.SESSION),
            settings.clinic,
        ),
    )
    container.register_factory(
        ServiceNames.CONSULTATION,
        lambda: ConsultationUseCase(
            record_store,
            container.get(ServiceNames.STATUS_LEDGER),
            container.get(ServiceNames.SESSION),
            container.get(ServiceNames.REGISTRATION),
            settings.clinic,
        ),
    )
    container.register_factory(
        ServiceNames.DISPENSE,
        lambda: DispensePipelineUseCase(
            record_store,
            container.get(ServiceNames.STATUS_LEDGER),
            container.get(ServiceNames.LOOKUP_CACHE),
            container.get(ServiceNames.SESSION),
        ),
    )
    container.register_factory(
        ServiceNames.CHECKOUT,
        lambda: CheckoutUseCase(
            container.get(ServiceNames.STATUS_LEDGER),
            container.get(ServiceNames.SESSION),
            settings.clinic,
        ),
    )

    session = container.get(ServiceNames.SESSION)
    if hasattr(record_store, "set_unauthorized_handler"):
        record_store.set_unauthorized_handler(session.invalidate)
    return container
