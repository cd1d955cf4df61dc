"""Domain models for the coin ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(slots=True)
class BalanceSnapshot:
    wallet: str
    credit_balance: Decimal
    updated_at: Optional[datetime]


@dataclass(slots=True)
class LedgerEntry:
    id: int
    order_id: str
    wallet: str
    amount: Decimal
    created_at: datetime
