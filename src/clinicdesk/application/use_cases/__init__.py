"""Use cases: the operator-facing workflows of the clinic."""

from .checkout import CheckoutUseCase
from .consultation import ActiveConsultation, ConsultationUseCase
from .dispense_pipeline import DispensePipelineUseCase
from .registration_workflow import RegistrationWorkflowUseCase
from .session_negotiation import SessionNegotiationUseCase

__all__ = [
    "ActiveConsultation",
    "CheckoutUseCase",
    "ConsultationUseCase",
    "DispensePipelineUseCase",
    "RegistrationWorkflowUseCase",
    "SessionNegotiationUseCase",
]
