"""Ledger domain exports"""

from .models import BalanceSnapshot, LedgerEntry
from .service import LedgerService

__all__ = [
    "BalanceSnapshot",
    "LedgerEntry",
    "LedgerService",
]
