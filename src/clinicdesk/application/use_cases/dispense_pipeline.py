"""Dispense pipeline use case.

Pharmacy side of a visit. Completing a dispense is a saga:

1. dispense status → DISPENSING, stock shown for every line
2. dispense status → DISPENSED; from here on nothing is rolled back
3. internal-use inventory document posted to deduct stock
4. dispense record written, whatever stage 3 returned

A failure in stage 3 comes back as a warning on the outcome.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ...core.constants import (
    COMPLETE_DOC_ACTION,
    DISPENSE_RECORD_PREFIX,
    DISPENSE_STATUS_PREFIX,
    INVENTORY_LINE_TABLE,
    INVENTORY_TABLE,
    STORAGE_TABLE,
)
from ...core.exceptions import ClinicDeskException, RecordStoreError, ValidationError
from ...core.utils.datetime_utils import to_date_string
from ...domain.entities.dispense import (
    DispenseItem,
    DispenseOutcome,
    DispenseRecord,
    DispenseRecordLine,
    StockDeductionResult,
    StockInfo,
)
from ...domain.entities.prescription import Prescription
from ...domain.entities.session import SessionContext
from ...domain.enums.workflow import DispenseStatus, PrescriptionStatus
from ...domain.errors import MissingScopeError
from ..ports.services.record_store import RecordStore
from ..services.lookup_cache import LookupCache
from ..services.status_ledger import StatusLedger, SubjectStatusLedger
from .consultation import list_prescriptions, load_prescription
from .session_negotiation import SessionNegotiationUseCase

logger = logging.getLogger(__name__)


class DispensePipelineUseCase:
    """Pending-dispense queue and the dispense saga."""

    def __init__(
        self,
        record_store: RecordStore,
        ledger: StatusLedger,
        lookup_cache: LookupCache,
        session: SessionNegotiationUseCase,
    ) -> None:
        self._store = record_store
        self._ledger = ledger
        self._lookup_cache = lookup_cache
        self._session = session
        self.dispense_status: SubjectStatusLedger[DispenseStatus] = SubjectStatusLedger(
            ledger,
            DISPENSE_STATUS_PREFIX,
            DispenseStatus,
            DispenseStatus.PENDING,
            "Clinic dispense status",
        )
        self.queue: List[DispenseItem] = []
        self.current_item: Optional[DispenseItem] = None
        self.current_stock: Dict[int, List[StockInfo]] = {}
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        return sum(1 for item in self.queue if item.status == DispenseStatus.PENDING)

    @property
    def dispensing_item(self) -> Optional[DispenseItem]:
        return next((i for i in self.queue if i.status == DispenseStatus.DISPENSING), None)

    def find_item(self, assignment_id: int) -> Optional[DispenseItem]:
        return next((i for i in self.queue if i.assignment_id == assignment_id), None)

    def _context(self) -> SessionContext:
        context = self._session.context
        if context is None or context.organization_id is None:
            raise MissingScopeError()
        return context

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    async def load_queue(self) -> List[DispenseItem]:
        """Completed prescriptions that have not been dispensed yet."""
        self.error = None
        try:
            prescriptions = await list_prescriptions(self._ledger, PrescriptionStatus.COMPLETED)
            statuses = await self.dispense_status.get_many(p.assignment_id for p in prescriptions)
        except ClinicDeskException as e:
            self.error = e.message
            raise
        self.queue = [
            DispenseItem(assignment_id=p.assignment_id, prescription=p, status=statuses[p.assignment_id])
            for p in prescriptions
            if statuses[p.assignment_id] != DispenseStatus.DISPENSED
        ]
        return self.queue

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    async def get_product_stock(self, product_id: int) -> List[StockInfo]:
        records = await self._store.list(
            STORAGE_TABLE, filter=f"M_Product_ID eq {int(product_id)}", expand="M_Locator_ID"
        )
        return [StockInfo.from_record(product_id, r) for r in records]

    async def list_all_stock(self) -> List[Dict[str, Any]]:
        """On-hand quantities of every product and locator."""
        records = await self._store.list(
            STORAGE_TABLE, expand="M_Product_ID,M_Locator_ID", order_by="M_Product_ID asc"
        )
        rows = []
        for r in records:
            product = r.get("M_Product_ID")
            locator = r.get("M_Locator_ID")
            rows.append(
                {
                    "id": r.get("id"),
                    "product_id": product.get("id") if isinstance(product, dict) else product,
                    "product_name": product.get("identifier", "") if isinstance(product, dict) else "",
                    "locator_id": locator.get("id") if isinstance(locator, dict) else locator,
                    "locator_name": locator.get("identifier", "") if isinstance(locator, dict) else "",
                    "qty_on_hand": r.get("QtyOnHand") or 0,
                }
            )
        return rows

    async def deduct_stock(
        self,
        lines: Sequence[DispenseRecordLine],
        warehouse_id: int,
        org_id: int,
        description: Optional[str] = None,
    ) -> StockDeductionResult:
        """Post an internal-use inventory document for ``lines``."""
        lines = [line for line in lines if line.total_quantity > 0]
        if not lines:
            return StockDeductionResult(inventory_id=0, completed=False, error="No lines to deduct")

        locator_id = await self._lookup_cache.default_locator_id(warehouse_id)
        if not locator_id:
            return StockDeductionResult(
                inventory_id=0,
                completed=False,
                error=f"No default locator found for warehouse {warehouse_id}",
            )
        doc_type_id = await self._lookup_cache.internal_use_doc_type_id()
        charge_id = await self._lookup_cache.dispense_charge_id(org_id)

        header = await self._store.create(
            INVENTORY_TABLE,
            {
                "AD_Org_ID": org_id,
                "C_DocType_ID": doc_type_id,
                "M_Warehouse_ID": warehouse_id,
                "Description": description or "Clinic dispense",
                "MovementDate": to_date_string(datetime.now()),
            },
        )
        inventory_id = int(header.get("id") or 0)

        try:
            for line in lines:
                await self._store.create(
                    INVENTORY_LINE_TABLE,
                    {
                        "AD_Org_ID": org_id,
                        "M_Inventory_ID": inventory_id,
                        "M_Product_ID": line.product_id,
                        "M_Locator_ID": locator_id,
                        "QtyInternalUse": line.total_quantity,
                        "C_Charge_ID": charge_id,
                    },
                )
        except RecordStoreError as e:
            logger.warning("Inventory document %s left in draft: %s", inventory_id, e.detail)
            return StockDeductionResult(inventory_id=inventory_id, completed=False, error=e.detail)

        try:
            await self._store.update(INVENTORY_TABLE, inventory_id, dict(COMPLETE_DOC_ACTION))
        except RecordStoreError as e:
            logger.warning("Inventory document %s could not be completed: %s", inventory_id, e.detail)
            return StockDeductionResult(inventory_id=inventory_id, completed=False, error=e.detail)
        return StockDeductionResult(inventory_id=inventory_id, completed=True)

    # ------------------------------------------------------------------
    # Dispense records
    # ------------------------------------------------------------------

    async def save_dispense_record(self, record: DispenseRecord, org_id: int) -> None:
        await self._ledger.upsert_json(
            f"{DISPENSE_RECORD_PREFIX}{record.assignment_id}",
            record.to_json(),
            org_id,
            "Clinic dispense record",
        )

    async def list_dispense_records(self) -> List[DispenseRecord]:
        try:
            entries = await self._ledger.list_by_prefix(DISPENSE_RECORD_PREFIX)
        except RecordStoreError as e:
            logger.warning("Could not list dispense records: %s", e.detail)
            return []
        records = []
        for entry in entries:
            data = entry.json_value()
            if isinstance(data, dict) and entry.subject_id is not None:
                records.append(DispenseRecord.from_json(entry.subject_id, data))
        return records

    # ------------------------------------------------------------------
    # Saga
    # ------------------------------------------------------------------

    async def start_dispensing(self, assignment_id: int) -> DispenseItem:
        """Stage 1: claim the item and load stock for its lines."""
        self.error = None
        context = self._context()
        item = self.find_item(assignment_id)
        if item is None:
            prescription = await load_prescription(self._ledger, assignment_id)
            if prescription is None:
                raise ValidationError(f"No prescription found for assignment {assignment_id}")
            item = DispenseItem(assignment_id=assignment_id, prescription=prescription)
            self.queue.append(item)

        try:
            await self.dispense_status.set(assignment_id, DispenseStatus.DISPENSING, context.organization_id)
        except ClinicDeskException as e:
            self.error = e.message
            raise
        item.status = DispenseStatus.DISPENSING
        self.current_item = item

        self.current_stock = {}
        for line in item.prescription.lines:
            try:
                self.current_stock[line.product_id] = await self.get_product_stock(line.product_id)
            except RecordStoreError as e:
                logger.warning("Stock lookup failed for product %s: %s", line.product_id, e.detail)
                self.current_stock[line.product_id] = []
        return item

    async def complete_dispensing(self, assignment_id: int) -> DispenseOutcome:
        """Stages 2 to 4; a failed stock deduction only produces a warning."""
        self.error = None
        context = self._context()
        org_id = context.organization_id

        item = self.find_item(assignment_id)
        prescription: Optional[Prescription] = item.prescription if item else None
        if prescription is None:
            prescription = await load_prescription(self._ledger, assignment_id)
        if prescription is None:
            prescription = Prescription(assignment_id=assignment_id)

        try:
            await self.dispense_status.set(assignment_id, DispenseStatus.DISPENSED, org_id)
        except ClinicDeskException as e:
            self.error = e.message
            raise
        if item is not None:
            item.status = DispenseStatus.DISPENSED

        warnings: List[str] = []
        record = DispenseRecord.from_prescription(prescription)
        result = StockDeductionResult(inventory_id=0, completed=False)
        stage = "status"

        if record.lines and not context.warehouse_id:
            warnings.append("No warehouse in session scope; stock not deducted")
        elif record.lines:
            try:
                result = await self.deduct_stock(
                    record.lines,
                    context.warehouse_id,
                    org_id,
                    f"Clinic dispense for assignment {assignment_id}",
                )
            except RecordStoreError as e:
                result = StockDeductionResult(inventory_id=0, completed=False, error=e.detail)
            if result.completed:
                stage = "inventory"
            if result.error:
                warnings.append(f"Dispensed, but stock deduction failed: {result.error}")

        record.inventory_id = result.inventory_id or None
        try:
            await self.save_dispense_record(record, org_id)
            stage = "record"
        except RecordStoreError as e:
            warnings.append(f"Dispensed, but the dispense record was not saved: {e.detail}")

        self.queue = [i for i in self.queue if i.assignment_id != assignment_id]
        self.clear_current()

        warning = "; ".join(warnings) or None
        if warning:
            self.error = warning
        logger.info(
            "Dispensed assignment %s (inventory=%s completed=%s)",
            assignment_id,
            record.inventory_id,
            result.completed,
        )
        return DispenseOutcome(
            assignment_id=assignment_id,
            stage=stage,
            completed=result.completed,
            inventory_id=record.inventory_id,
            warning=warning,
        )

    def clear_current(self) -> None:
        self.current_item = None
        self.current_stock = {}
