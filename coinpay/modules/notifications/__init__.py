"""Reconciliation notifier: how terminal and intermediate order states reach the UI."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from coinpay.modules.orders.models import OrderStatus

logger = logging.getLogger(__name__)


class ReconciliationNotifier(Protocol):
    async def on_order_update(self, order_id: str, status: OrderStatus, detail: Optional[str]) -> None:
        ...


class LoggingNotifier:
    async def on_order_update(self, order_id: str, status: OrderStatus, detail: Optional[str]) -> None:
        logger.info("Order %s -> %s%s", order_id, status.value, f" ({detail})" if detail else "")


class CompositeNotifier:
    """Fans an update out to several notifiers; one failing never blocks the rest."""

    def __init__(self, notifiers: Sequence[ReconciliationNotifier]) -> None:
        self._notifiers = list(notifiers)

    async def on_order_update(self, order_id: str, status: OrderStatus, detail: Optional[str]) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.on_order_update(order_id, status, detail)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Notifier %s failed for order %s: %s", type(notifier).__name__, order_id, exc)


__all__ = ["CompositeNotifier", "LoggingNotifier", "ReconciliationNotifier"]
