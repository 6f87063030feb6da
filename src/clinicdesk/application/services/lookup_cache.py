"""
Lookup cache for tenant-specific reference ids.

Ids such as the default customer group or the internal-use document type
differ per tenant, so they are resolved by query on first use and memoized
until the session scope changes. A lookup that finds nothing is not memoized.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ...core.constants import DISPENSE_CHARGE_NAME, DOCTOR_RESOURCE_TYPE_NAME, RESOURCE_TYPE_TABLE
from ...core.utils.odata import and_, eq
from ..ports.services.record_store import RecordStore

logger = logging.getLogger(__name__)

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _first_id(records: Any) -> int:
    if not records:
        return 0
    return int(records[0].get("id") or 0)


class LookupCache:
    """Process-lifetime key → id memo over the record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._cache: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._generation = 0

    def clear(self) -> None:
        """Forget every resolved id; called whenever the session scope changes."""
        self._cache.clear()
        self._generation += 1
        logger.debug("Lookup cache cleared")

    def cached(self, key: str) -> Optional[int]:
        return self._cache.get(key)

    def __len__(self) -> int:
        return len(self._cache)

    def _store_result(self, key: str, value: int, generation: int) -> None:
        # Results fetched before a clear() belong to the previous scope
        if value and generation == self._generation:
            self._cache[key] = value

    async def _resolve(self, key: str, fetch: Callable[[], Awaitable[int]]) -> int:
        if key in self._cache:
            return self._cache[key]
        generation = self._generation
        value = await fetch()
        self._store_result(key, value, generation)
        return value

    async def _ensure(
        self,
        key: str,
        fetch: Callable[[], Awaitable[int]],
        create: Callable[[], Awaitable[int]],
    ) -> int:
        """Look up, create when nothing exists; serialized per key."""
        if key in self._cache:
            return self._cache[key]
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self._cache:
                return self._cache[key]
            generation = self._generation
            value = await fetch()
            if not value:
                logger.info("Creating missing reference record for %s", key)
                value = await create()
            self._store_result(key, value, generation)
            return value

    # ------------------------------------------------------------------
    # Plain lookups
    # ------------------------------------------------------------------

    async def each_uom_id(self) -> int:
        async def fetch() -> int:
            records = await self._store.list(
                "C_UOM",
                filter="X12DE355 eq 'EA' and IsActive eq true",
                select="C_UOM_ID,Name",
                top=1,
            )
            return _first_id(records)

        return await self._resolve("C_UOM_Each", fetch)

    async def doc_type_id(self, doc_base_type: str) -> int:
        async def fetch() -> int:
            records = await self._store.list(
                "C_DocType",
                filter=and_(eq("DocBaseType", doc_base_type), "IsActive eq true"),
                select="C_DocType_ID,Name",
                top=1,
            )
            return _first_id(records)

        return await self._resolve(f"C_DocType_{doc_base_type}", fetch)

    async def internal_use_doc_type_id(self) -> int:
        async def fetch() -> int:
            records = await self._store.list(
                "C_DocType",
                filter="DocBaseType eq 'MMI' and contains(Name,'Internal Use') and IsActive eq true",
                select="C_DocType_ID,Name",
                top=1,
            )
            return _first_id(records)

        return await self._resolve("C_DocType_InternalUse", fetch)

    async def customer_group_id(self) -> int:
        """Default customer group, else the first active one."""

        async def fetch() -> int:
            records = await self._store.list(
                "C_BP_Group",
                filter="IsActive eq true",
                select="C_BP_Group_ID,Name,IsDefault",
                order_by="IsDefault desc, Name asc",
                top=5,
            )
            preferred = next((r for r in records if r.get("IsDefault")), None)
            if preferred is None and records:
                preferred = records[0]
            return int(preferred.get("id") or 0) if preferred else 0

        return await self._resolve("C_BP_Group", fetch)

    async def default_tax_id(self) -> int:
        async def fetch() -> int:
            records = await self._store.list(
                "C_Tax",
                filter="IsActive eq true",
                select="C_Tax_ID,Name,IsDefault",
                order_by="IsDefault desc, Name asc",
                top=1,
            )
            return _first_id(records)

        return await self._resolve("C_Tax", fetch)

    async def default_locator_id(self, warehouse_id: int) -> int:
        async def fetch() -> int:
            records = await self._store.list(
                "M_Locator",
                filter=f"M_Warehouse_ID eq {int(warehouse_id)} and IsDefault eq true and IsActive eq true",
                top=1,
            )
            return _first_id(records)

        return await self._resolve(f"M_Locator_Default_{warehouse_id}", fetch)

    # ------------------------------------------------------------------
    # Ensure-style lookups
    # ------------------------------------------------------------------

    async def dispense_charge_id(self, org_id: int) -> int:
        """Charge booked against internal-use dispensing lines."""

        async def fetch() -> int:
            records = await self._store.list(
                "C_Charge",
                filter=and_(eq("Name", DISPENSE_CHARGE_NAME), "IsActive eq true"),
                top=1,
            )
            return _first_id(records)

        async def create() -> int:
            created = await self._store.create(
                "C_Charge",
                {
                    "AD_Org_ID": org_id,
                    "Name": DISPENSE_CHARGE_NAME,
                    "IsSameTax": False,
                    "IsSameCurrency": True,
                },
            )
            return int(created.get("id") or 0)

        return await self._ensure("C_Charge_Dispense", fetch, create)

    async def doctor_resource_type_id(self, org_id: int) -> int:
        """Resource type used for doctors; created with its defaults when absent."""

        async def fetch() -> int:
            records = await self._store.list(
                RESOURCE_TYPE_TABLE, filter="IsActive eq true", top=1
            )
            return _first_id(records)

        async def create() -> int:
            uom_id = await self.each_uom_id()
            tax_category = await self._store.list(
                "C_TaxCategory", filter="IsActive eq true", order_by="IsDefault desc, Name asc", top=1
            )
            product_category = await self._store.list(
                "M_Product_Category", filter="IsActive eq true", order_by="IsDefault desc, Name asc", top=1
            )
            created = await self._store.create(
                RESOURCE_TYPE_TABLE,
                {
                    "AD_Org_ID": org_id,
                    "Name": DOCTOR_RESOURCE_TYPE_NAME,
                    "Value": DOCTOR_RESOURCE_TYPE_NAME,
                    "C_UOM_ID": uom_id,
                    "C_TaxCategory_ID": _first_id(tax_category),
                    "M_Product_Category_ID": _first_id(product_category),
                    "IsDateSlot": False,
                    "IsTimeSlot": False,
                    "IsSingleAssignment": False,
                    "AllowUoMFractions": False,
                    # Open Monday to Saturday
                    **{f"On{day}": day != "Sunday" for day in _WEEKDAYS},
                },
            )
            return int(created.get("id") or 0)

        return await self._ensure("S_ResourceType", fetch, create)

    async def default_warehouse_id(self) -> int:
        async def fetch() -> int:
            records = await self._store.list(
                "M_Warehouse", filter="IsActive eq true", select="M_Warehouse_ID,Name", top=1
            )
            return _first_id(records)

        return await self._resolve("M_Warehouse_Default", fetch)
