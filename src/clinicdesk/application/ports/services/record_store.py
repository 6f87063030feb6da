"""
Record store interface for generic ERP model access.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class RecordStore(ABC):
    """Abstract access to the ERP's named record collections."""

    @abstractmethod
    async def list(
        self,
        collection: str,
        filter: Optional[str] = None,
        order_by: Optional[str] = None,
        top: Optional[int] = None,
        expand: Optional[str] = None,
        select: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query a collection.

        Args:
            collection: Table name, e.g. ``AD_SysConfig``
            filter: Filter expression with free text already escaped
            order_by: Ordering clause, e.g. ``Name asc``
            top: Maximum number of rows
            expand: Foreign keys to expand into ``{id, identifier}`` objects
            select: Comma-separated columns to return

        Returns:
            The matching rows; an empty list when nothing matches
        """
        pass

    @abstractmethod
    async def get(self, collection: str, record_id: int) -> Dict[str, Any]:
        """Fetch one row by id."""
        pass

    @abstractmethod
    async def create(self, collection: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it, including its new ``id``."""
        pass

    @abstractmethod
    async def update(self, collection: str, record_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Partially update a row.

        Document rows also accept ``{"doc-action": "CO"}`` to be completed.
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, record_id: int) -> None:
        """Remove a row."""
        pass
