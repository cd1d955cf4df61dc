"""Repository interface for the coin ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from coinpay.db.models import CreditBalance, CreditLedgerEntry


class LedgerRepository(Protocol):
    async def get_balance(self, wallet: str) -> CreditBalance | None:
        ...

    async def increment_balance(self, wallet: str, delta_units: int) -> CreditBalance:
        ...

    async def add_entry(
        self,
        *,
        order_id: str,
        wallet: str,
        amount_units: int,
        created_at: datetime,
    ) -> CreditLedgerEntry:
        ...

    async def list_entries(self, wallet: str, limit: int, offset: int) -> Sequence[CreditLedgerEntry]:
        ...
