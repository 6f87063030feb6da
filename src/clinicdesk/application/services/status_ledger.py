"""
Status ledger: durable name → value records for workflow state the ERP has no
column for.

Every entry is an ``AD_SysConfig`` row named ``{PREFIX}{subject id}``. A
missing entry is the normal initial state and resolves to the caller's
default, never to an error.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from ...core.constants import LEDGER_PAGE_SIZE, LEDGER_TABLE
from ...core.exceptions import RecordStoreError
from ...core.utils.odata import contains, eq, in_list, parse_numeric_suffix
from ..ports.services.record_store import RecordStore

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


@dataclass
class LedgerEntry:
    id: int
    name: str
    value: str

    @property
    def subject_id(self) -> Optional[int]:
        return parse_numeric_suffix(self.name)

    def json_value(self) -> Optional[Any]:
        try:
            return json.loads(self.value)
        except (TypeError, ValueError):
            return None


def _entry(record: Dict[str, Any]) -> LedgerEntry:
    return LedgerEntry(
        id=int(record.get("id") or 0),
        name=str(record.get("Name") or ""),
        value=str(record.get("Value") or ""),
    )


class StatusLedger:
    """Upsert-only access to the ledger table."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def get_record(self, name: str) -> Optional[LedgerEntry]:
        records = await self._store.list(LEDGER_TABLE, filter=eq("Name", name))
        if not records:
            return None
        return _entry(records[0])

    async def get_value(self, name: str) -> Optional[str]:
        record = await self.get_record(name)
        return record.value if record else None

    async def get_json(self, name: str) -> Optional[Any]:
        """Parsed JSON value; unparseable values read as missing."""
        record = await self.get_record(name)
        if record is None:
            return None
        data = record.json_value()
        if data is None:
            logger.warning("Ignoring unparseable ledger value for %s", name)
        return data

    async def upsert(
        self,
        name: str,
        value: str,
        org_id: int,
        description: Optional[str] = None,
    ) -> None:
        """Update the entry named ``name`` or create it; never duplicates."""
        existing = await self.get_record(name)
        if existing is not None:
            await self._store.update(LEDGER_TABLE, existing.id, {"Value": value})
            return
        await self._store.create(
            LEDGER_TABLE,
            {
                "AD_Org_ID": org_id,
                "Name": name,
                "Value": value,
                "Description": description or name,
                "ConfigurationLevel": "S",
            },
        )

    async def upsert_json(
        self, name: str, value: Any, org_id: int, description: Optional[str] = None
    ) -> None:
        await self.upsert(name, json.dumps(value, ensure_ascii=False), org_id, description)

    async def batch_get(self, names: Iterable[str]) -> Dict[str, str]:
        """Values for ``names`` in one query.

        A failed query yields an empty mapping so that callers fall back to
        their defaults instead of blocking the whole view.
        """
        names = list(names)
        if not names:
            return {}
        try:
            records = await self._store.list(LEDGER_TABLE, filter=in_list("Name", names))
        except RecordStoreError as e:
            logger.warning("Batch ledger lookup failed: %s", e.detail)
            return {}
        return {entry.name: entry.value for entry in map(_entry, records)}

    async def list_by_prefix(
        self,
        prefix: str,
        order_by: str = "Updated desc",
        top: int = LEDGER_PAGE_SIZE,
    ) -> List[LedgerEntry]:
        records = await self._store.list(
            LEDGER_TABLE, filter=contains("Name", prefix), order_by=order_by, top=top
        )
        return [_entry(r) for r in records if str(r.get("Name") or "").startswith(prefix)]

    async def delete(self, name: str) -> bool:
        existing = await self.get_record(name)
        if existing is None:
            return False
        await self._store.delete(LEDGER_TABLE, existing.id)
        return True


class SubjectStatusLedger(Generic[E]):
    """Typed view over one ledger prefix holding an enum status per subject."""

    def __init__(
        self,
        ledger: StatusLedger,
        prefix: str,
        status_type: Type[E],
        default: E,
        description: str,
    ) -> None:
        self._ledger = ledger
        self.prefix = prefix
        self._status_type = status_type
        self._default = default
        self._description = description

    def name(self, subject_id: int) -> str:
        return f"{self.prefix}{subject_id}"

    def _parse(self, value: Optional[str]) -> E:
        if not value:
            return self._default
        try:
            return self._status_type(value)
        except ValueError:
            logger.warning("Unknown %s value %r; using %s", self.prefix, value, self._default.value)
            return self._default

    async def get(self, subject_id: int) -> E:
        """Status of one subject; a failed read resolves to the default."""
        try:
            value = await self._ledger.get_value(self.name(subject_id))
        except RecordStoreError as e:
            logger.warning("Ledger read failed for %s: %s", self.name(subject_id), e.detail)
            return self._default
        return self._parse(value)

    async def get_many(self, subject_ids: Iterable[int]) -> Dict[int, E]:
        ids = list(subject_ids)
        values = await self._ledger.batch_get(self.name(i) for i in ids)
        return {i: self._parse(values.get(self.name(i))) for i in ids}

    async def set(self, subject_id: int, status: E, org_id: int) -> None:
        await self._ledger.upsert(self.name(subject_id), status.value, org_id, self._description)
