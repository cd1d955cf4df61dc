"""Checkout context: the wallet session and poll loops owned by one UI context."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Optional

from coinpay.modules.conversion import SourceCurrency
from coinpay.modules.wallets import ConnectionRejected, WalletConnector, WalletSession

from .models import LINKABLE_STATUSES, Order, Rail
from .service import OrderLifecycleManager

logger = logging.getLogger(__name__)


class CheckoutContext:
    """Owns a wallet session for the lifetime of one UI context.

    Orders started through the context are tracked; when a wallet connects,
    tracked orders that are still waiting for one are late-linked, and when
    the context closes every poll loop it started is cancelled.
    """

    def __init__(self, manager: OrderLifecycleManager, connector: WalletConnector) -> None:
        self._manager = manager
        self._connector = connector
        self._order_ids: list[str] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.session = WalletSession(connected=False)

    async def __aenter__(self) -> "CheckoutContext":
        self._unsubscribe = self._connector.on_status_change(self._on_status_change)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for order_id in self._order_ids:
            self._manager.stop_polling(order_id)
        logger.debug("Checkout context closed, %d orders released", len(self._order_ids))

    @property
    def order_ids(self) -> tuple[str, ...]:
        return tuple(self._order_ids)

    async def connect(self) -> WalletSession:
        session = await self._connector.connect()
        await self._on_status_change(session)
        return session

    async def disconnect(self) -> None:
        await self._connector.disconnect()
        await self._on_status_change(WalletSession(connected=False))

    async def buy_onchain(self, amount: Decimal | int | str, currency: SourceCurrency | str) -> Order:
        if not self.session.connected or not self.session.address:
            raise ConnectionRejected("connect a wallet before paying on-chain")
        order = await self._manager.create_order(
            rail=Rail.ON_CHAIN,
            source_amount=amount,
            source_currency=currency,
            payer_wallet=self.session.address,
        )
        self._track(order.id)
        return await self._manager.submit_onchain(order.id, self._connector)

    async def buy_with_gateway(
        self,
        amount: Decimal | int | str,
        currency: SourceCurrency | str,
        email: str,
    ) -> Order:
        wallet = self.session.address if self.session.connected else None
        order = await self._manager.create_order(
            rail=Rail.FIAT_GATEWAY,
            source_amount=amount,
            source_currency=currency,
            payer_wallet=wallet,
            payer_email=email,
        )
        self._track(order.id)
        return await self._manager.open_checkout(order.id)

    async def gateway_returned(self, reference: str) -> Order:
        order = await self._manager.handle_gateway_reference(reference)
        self._track(order.id)
        if order.payer_wallet is None and order.status in LINKABLE_STATUSES and self.session.connected:
            order = await self._manager.link_wallet(order.id, self.session.address or "")
        return order

    def _track(self, order_id: str) -> None:
        if order_id not in self._order_ids:
            self._order_ids.append(order_id)

    async def _on_status_change(self, session: WalletSession) -> None:
        self.session = session
        if not session.connected or not session.address:
            return
        for order_id in self._order_ids:
            order = await self._manager.get_order(order_id)
            if order.payer_wallet is None and order.status in LINKABLE_STATUSES:
                await self._manager.link_wallet(order_id, session.address)
