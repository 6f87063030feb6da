"""Checkout use case: collect the copayment for dispensed visits."""

import logging
from typing import List, Optional

from ...core.config import ClinicSettings
from ...core.constants import CHECKOUT_STATUS_PREFIX, DISPENSE_STATUS_PREFIX
from ...core.exceptions import ClinicDeskException, ValidationError
from ...domain.entities.dispense import CheckoutItem
from ...domain.enums.workflow import CheckoutStatus, DispenseStatus, PrescriptionStatus
from ...domain.errors import MissingScopeError
from ..services.status_ledger import StatusLedger, SubjectStatusLedger
from .consultation import list_prescriptions
from .session_negotiation import SessionNegotiationUseCase

logger = logging.getLogger(__name__)


class CheckoutUseCase:
    def __init__(
        self,
        ledger: StatusLedger,
        session: SessionNegotiationUseCase,
        settings: ClinicSettings,
    ) -> None:
        self._ledger = ledger
        self._session = session
        self._settings = settings
        self.dispense_status = SubjectStatusLedger(
            ledger, DISPENSE_STATUS_PREFIX, DispenseStatus, DispenseStatus.PENDING, "Clinic dispense status"
        )
        self.checkout_status = SubjectStatusLedger(
            ledger, CHECKOUT_STATUS_PREFIX, CheckoutStatus, CheckoutStatus.PENDING, "Clinic checkout status"
        )
        self.items: List[CheckoutItem] = []
        self.current_item: Optional[CheckoutItem] = None
        self.received_amount: float = 0
        self.error: Optional[str] = None

    @property
    def copayment(self) -> float:
        return self._settings.copayment

    @property
    def change_amount(self) -> float:
        return max(self.received_amount - self.copayment, 0)

    @property
    def pending_count(self) -> int:
        return len(self.items)

    async def load_items(self) -> List[CheckoutItem]:
        """Dispensed visits whose copayment is still outstanding."""
        self.error = None
        try:
            prescriptions = await list_prescriptions(self._ledger, PrescriptionStatus.COMPLETED)
            ids = [p.assignment_id for p in prescriptions]
            dispense = await self.dispense_status.get_many(ids)
            checkout = await self.checkout_status.get_many(ids)
        except ClinicDeskException as e:
            self.error = e.message
            raise

        self.items = [
            CheckoutItem(
                assignment_id=p.assignment_id,
                prescription=p,
                dispense_status=dispense[p.assignment_id],
                checkout_status=checkout[p.assignment_id],
            )
            for p in prescriptions
            if dispense[p.assignment_id] == DispenseStatus.DISPENSED
            and checkout[p.assignment_id] != CheckoutStatus.PAID
        ]
        return self.items

    def select_item(self, assignment_id: int) -> CheckoutItem:
        item = next((i for i in self.items if i.assignment_id == assignment_id), None)
        if item is None:
            raise ValidationError(f"Assignment {assignment_id} is not awaiting checkout")
        self.current_item = item
        self.received_amount = 0
        return item

    def set_received_amount(self, amount: float) -> float:
        if amount < 0:
            raise ValidationError("Received amount cannot be negative")
        self.received_amount = amount
        return self.change_amount

    async def complete_checkout(self, assignment_id: Optional[int] = None) -> CheckoutItem:
        """Mark the selected (or given) visit PAID and drop it from the list."""
        self.error = None
        if assignment_id is not None:
            item = next((i for i in self.items if i.assignment_id == assignment_id), None)
        else:
            item = self.current_item
        if item is None:
            raise ValidationError("No checkout item selected")

        context = self._session.context
        if context is None or context.organization_id is None:
            raise MissingScopeError()

        try:
            await self.checkout_status.set(item.assignment_id, CheckoutStatus.PAID, context.organization_id)
        except ClinicDeskException as e:
            self.error = e.message
            raise
        item.checkout_status = CheckoutStatus.PAID
        self.items = [i for i in self.items if i.assignment_id != item.assignment_id]
        logger.info("Checkout completed for assignment %s", item.assignment_id)
        self.clear_current()
        return item

    def clear_current(self) -> None:
        self.current_item = None
        self.received_amount = 0
