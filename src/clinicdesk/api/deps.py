"""FastAPI dependency providers.

Every provider resolves from the container stored on ``app.state`` by
``create_app``, so a test can swap the adapters by building its own.
"""

from fastapi import Request

from ..application.use_cases import (
    CheckoutUseCase,
    ConsultationUseCase,
    DispensePipelineUseCase,
    RegistrationWorkflowUseCase,
    SessionNegotiationUseCase,
)
from ..core.container import Container, ServiceNames


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_session(request: Request) -> SessionNegotiationUseCase:
    return get_container(request).get(ServiceNames.SESSION)


def get_registration(request: Request) -> RegistrationWorkflowUseCase:
    return get_container(request).get(ServiceNames.REGISTRATION)


def get_consultation(request: Request) -> ConsultationUseCase:
    return get_container(request).get(ServiceNames.CONSULTATION)


def get_dispense(request: Request) -> DispensePipelineUseCase:
    return get_container(request).get(ServiceNames.DISPENSE)


def get_checkout(request: Request) -> CheckoutUseCase:
    return get_container(request).get(ServiceNames.CHECKOUT)


def require_session(request: Request) -> SessionNegotiationUseCase:
    """Session dependency for routes that need a scoped ERP token."""
    session = get_session(request)
    session.require_context()
    return session
