"""SQLAlchemy-backed repository implementations."""

from .ledger_repository import SqlLedgerRepository
from .order_repository import SqlOrderStore

__all__ = [
    "SqlLedgerRepository",
    "SqlOrderStore",
]
