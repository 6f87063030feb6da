"""Application services shared by the use cases."""

from .lookup_cache import LookupCache
from .status_ledger import LedgerEntry, StatusLedger, SubjectStatusLedger

__all__ = ["LookupCache", "StatusLedger", "SubjectStatusLedger", "LedgerEntry"]
