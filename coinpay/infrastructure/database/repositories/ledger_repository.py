"""SQLAlchemy implementation for the coin ledger"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coinpay.db.models import CreditBalance, CreditLedgerEntry


class SqlLedgerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_balance(self, wallet: str) -> CreditBalance | None:
        stmt = select(CreditBalance).where(CreditBalance.wallet == wallet)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_balance(self, wallet: str) -> CreditBalance:
        """Insert an empty balance row; call in a session of its own."""
        balance = CreditBalance(wallet=wallet, balance_units=0)
        self.session.add(balance)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            balance = await self.get_balance(wallet)
            if balance is None:
                raise
        return balance

    async def increment_balance(self, wallet: str, delta_units: int) -> CreditBalance:
        stmt = (
            update(CreditBalance)
            .where(CreditBalance.wallet == wallet)
            .values(balance_units=CreditBalance.balance_units + delta_units)
            .execution_options(synchronize_session="fetch")
            .returning(CreditBalance)
        )
        result = await self.session.execute(stmt)
        balance = result.scalars().first()
        if balance is None:
            # no row yet: a concurrent insert for the same wallet surfaces as
            # IntegrityError and aborts the caller's transaction
            balance = CreditBalance(wallet=wallet, balance_units=delta_units)
            self.session.add(balance)
            await self.session.flush()
        return balance

    async def add_entry(
        self,
        *,
        order_id: str,
        wallet: str,
        amount_units: int,
        created_at: datetime,
    ) -> CreditLedgerEntry:
        entry = CreditLedgerEntry(
            order_id=order_id,
            wallet=wallet,
            amount_units=amount_units,
            created_at=created_at,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_entries(self, wallet: str, limit: int, offset: int) -> Sequence[CreditLedgerEntry]:
        stmt = (
            select(CreditLedgerEntry)
            .where(CreditLedgerEntry.wallet == wallet)
            .order_by(desc(CreditLedgerEntry.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
