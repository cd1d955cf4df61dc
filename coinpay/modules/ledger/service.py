"""Ledger read service: balances and credit history per wallet."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from coinpay.db.models import CreditLedgerEntry as LedgerEntryModel
from coinpay.infrastructure.database.repositories.ledger_repository import SqlLedgerRepository
from coinpay.modules.conversion import CREDIT_DECIMALS, from_units

from .models import BalanceSnapshot, LedgerEntry
from .repository import LedgerRepository


@dataclass(slots=True)
class LedgerService:
    repository: LedgerRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "LedgerService":
        return cls(SqlLedgerRepository(session))

    async def balance(self, wallet: str) -> BalanceSnapshot:
        row = await self.repository.get_balance(wallet)
        if row is None:
            return BalanceSnapshot(wallet=wallet, credit_balance=Decimal(0), updated_at=None)
        return BalanceSnapshot(
            wallet=row.wallet,
            credit_balance=from_units(row.balance_units, CREDIT_DECIMALS),
            updated_at=row.updated_at or row.created_at,
        )

    async def entries(self, wallet: str, limit: int = 50, offset: int = 0) -> list[LedgerEntry]:
        rows = await self.repository.list_entries(wallet, limit, offset)
        return [self._to_entry(row) for row in rows]

    @staticmethod
    def _to_entry(model: LedgerEntryModel) -> LedgerEntry:
        return LedgerEntry(
            id=model.id,
            order_id=model.order_id,
            wallet=model.wallet,
            amount=from_units(model.amount_units, CREDIT_DECIMALS),
            created_at=model.created_at,
        )
