"""SQLAlchemy implementation of the order store"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Collection, Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coinpay.db.models import PaymentOrder
from coinpay.modules.conversion import (
    CREDIT_DECIMALS,
    FIAT_DECIMALS,
    TOKEN_DECIMALS,
    from_units,
    to_units,
)
from coinpay.modules.orders.exceptions import DoubleCreditAttempt
from coinpay.modules.orders.models import NewOrder, Order, OrderStatus, Rail

from .ledger_repository import SqlLedgerRepository

_MUTABLE_FIELDS = frozenset({"failure_reason", "detail", "settled_at", "settlement_target"})


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive values; everything is stored as UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SqlOrderStore:
    """Order store backed by an async session factory.

    Each call runs in its own short transaction so poll loops, callbacks and
    request handlers never share a session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create(self, order: NewOrder) -> Order:
        model = PaymentOrder(
            rail=order.rail.value,
            status=OrderStatus.CREATED.value,
            payer_wallet=order.payer_wallet,
            payer_email=order.payer_email,
            source_amount=str(order.source_amount),
            source_currency=order.source_currency,
            rate=str(order.rate),
            token_units=to_units(order.token_amount, TOKEN_DECIMALS),
            fiat_units=to_units(order.fiat_amount, FIAT_DECIMALS),
            credit_units=to_units(order.credit_amount, CREDIT_DECIMALS),
            settlement_amount=order.settlement_amount,
            external_ref=order.external_ref,
            settlement_target=order.settlement_target,
            created_at=order.created_at,
            expires_at=order.expires_at,
        )
        async with self._session() as session:
            session.add(model)
            await session.flush()
            await session.refresh(model)
        if order.payer_wallet:
            await self.ensure_balance(order.payer_wallet)
        return self._to_domain(model)

    async def get(self, order_id: str) -> Order | None:
        async with self._session() as session:
            model = await session.get(PaymentOrder, order_id)
            return self._to_domain(model) if model else None

    async def get_by_external_ref(self, external_ref: str) -> Order | None:
        stmt = select(PaymentOrder).where(PaymentOrder.external_ref == external_ref)
        async with self._session() as session:
            result = await session.execute(stmt)
            model = result.scalars().first()
            return self._to_domain(model) if model else None

    async def transition(
        self,
        order_id: str,
        *,
        from_statuses: Collection[OrderStatus],
        to_status: OrderStatus,
        **changes: Any,
    ) -> Order | None:
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"fields cannot be changed by a transition: {sorted(unknown)}")
        stmt = (
            update(PaymentOrder)
            .where(
                PaymentOrder.id == order_id,
                PaymentOrder.status.in_([status.value for status in from_statuses]),
            )
            .values(status=to_status.value, **changes)
            .execution_options(synchronize_session="fetch")
            .returning(PaymentOrder)
        )
        return await self._update_one(stmt)

    async def link_wallet(
        self,
        order_id: str,
        wallet: str,
        *,
        allowed: Collection[OrderStatus],
    ) -> Order | None:
        stmt = (
            update(PaymentOrder)
            .where(
                PaymentOrder.id == order_id,
                PaymentOrder.status.in_([status.value for status in allowed]),
                (PaymentOrder.payer_wallet.is_(None)) | (PaymentOrder.payer_wallet == wallet),
            )
            .values(payer_wallet=wallet)
            .execution_options(synchronize_session="fetch")
            .returning(PaymentOrder)
        )
        order = await self._update_one(stmt)
        if order is not None:
            await self.ensure_balance(wallet)
        return order

    async def ensure_balance(self, wallet: str) -> None:
        async with self._session() as session:
            ledger = SqlLedgerRepository(session)
            if await ledger.get_balance(wallet) is None:
                await ledger.create_balance(wallet)

    async def credit(self, order_id: str, *, credited_at: datetime) -> Order | None:
        stmt = (
            update(PaymentOrder)
            .where(
                PaymentOrder.id == order_id,
                PaymentOrder.status == OrderStatus.SETTLED.value,
                PaymentOrder.payer_wallet.is_not(None),
            )
            .values(status=OrderStatus.CREDITED.value, credited_at=credited_at)
            .execution_options(synchronize_session="fetch")
            .returning(PaymentOrder)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            model = result.scalars().first()
            if model is None:
                return None
            ledger = SqlLedgerRepository(session)
            await ledger.increment_balance(model.payer_wallet, model.credit_units)
            try:
                await ledger.add_entry(
                    order_id=model.id,
                    wallet=model.payer_wallet,
                    amount_units=model.credit_units,
                    created_at=credited_at,
                )
            except IntegrityError as exc:
                raise DoubleCreditAttempt(
                    order_id,
                    OrderStatus.SETTLED.value,
                    "ledger already holds a credit for this order",
                ) from exc
            return self._to_domain(model)

    async def list_by_status(self, statuses: Collection[OrderStatus], limit: int = 500) -> Sequence[Order]:
        stmt = (
            select(PaymentOrder)
            .where(PaymentOrder.status.in_([status.value for status in statuses]))
            .order_by(PaymentOrder.created_at)
            .limit(limit)
        )
        return await self._select_many(stmt)

    async def list_overdue(self, now: datetime, statuses: Collection[OrderStatus]) -> Sequence[Order]:
        stmt = (
            select(PaymentOrder)
            .where(
                PaymentOrder.status.in_([status.value for status in statuses]),
                PaymentOrder.expires_at < now,
            )
            .order_by(PaymentOrder.expires_at)
        )
        return await self._select_many(stmt)

    async def list_by_wallet(self, wallet: str, limit: int = 50, offset: int = 0) -> Sequence[Order]:
        stmt = (
            select(PaymentOrder)
            .where(PaymentOrder.payer_wallet == wallet)
            .order_by(desc(PaymentOrder.created_at))
            .offset(offset)
            .limit(limit)
        )
        return await self._select_many(stmt)

    async def _update_one(self, stmt) -> Order | None:
        async with self._session() as session:
            result = await session.execute(stmt)
            model = result.scalars().first()
            return self._to_domain(model) if model else None

    async def _select_many(self, stmt) -> list[Order]:
        async with self._session() as session:
            result = await session.execute(stmt)
            return [self._to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _to_domain(model: PaymentOrder) -> Order:
        return Order(
            id=model.id,
            rail=Rail(model.rail),
            status=OrderStatus(model.status),
            payer_wallet=model.payer_wallet,
            payer_email=model.payer_email,
            source_amount=Decimal(model.source_amount),
            source_currency=model.source_currency,
            rate=Decimal(model.rate),
            token_amount=from_units(model.token_units, TOKEN_DECIMALS),
            fiat_amount=from_units(model.fiat_units, FIAT_DECIMALS),
            credit_amount=from_units(model.credit_units, CREDIT_DECIMALS),
            settlement_amount=model.settlement_amount,
            external_ref=model.external_ref,
            settlement_target=model.settlement_target,
            created_at=_aware(model.created_at),
            expires_at=_aware(model.expires_at),
            failure_reason=model.failure_reason,
            detail=model.detail,
            settled_at=_aware(model.settled_at),
            credited_at=_aware(model.credited_at),
        )
