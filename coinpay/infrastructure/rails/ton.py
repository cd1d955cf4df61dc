"""On-chain confirmation through the TON Center HTTP API (v2).

A payment is recognised by the memo (transfer comment) the wallet attached,
which is the order's ``external_ref``. Several transfers carrying the same
memo are summed, so a payment split over two transactions still settles.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from coinpay.core.config import TonSettings
from coinpay.modules.common.exceptions import TransportError
from coinpay.modules.orders.models import Order, RailCheck, RailOutcome

from .base import HttpRailClient

logger = logging.getLogger(__name__)


class TonCenterRail(HttpRailClient):
    def __init__(self, settings: TonSettings) -> None:
        headers = {"X-API-Key": settings.api_key} if settings.api_key else {}
        super().__init__(settings.api_base_url, headers=headers, timeout=settings.request_timeout)
        self._lookback = settings.lookback
        self._max_pages = settings.max_pages

    async def get_transactions(
        self,
        address: str,
        *,
        lt: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ) -> list[dict]:
        """One page of transactions, newest first; ``lt``/``tx_hash`` start the page at that transaction."""
        params = {"address": address, "limit": self._lookback, "archival": "true"}
        if lt and tx_hash:
            params.update(lt=lt, hash=tx_hash)
        data = await self._request_json("GET", "getTransactions", params=params)
        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else data
            raise TransportError(f"toncenter answered without ok flag: {error}")
        return list(data.get("result") or [])

    async def transactions_since(self, address: str, since: datetime) -> list[dict]:
        """Walk back through the address history until transactions predate ``since``."""
        cutoff = since.timestamp()
        seen: set[tuple] = set()
        collected: list[dict] = []
        lt = tx_hash = None
        for _ in range(self._max_pages):
            page = await self.get_transactions(address, lt=lt, tx_hash=tx_hash)
            fresh = [tx for tx in page if _tx_key(tx) not in seen]
            for tx in fresh:
                seen.add(_tx_key(tx))
                collected.append(tx)
            if len(page) < self._lookback or not fresh:
                return collected
            last = page[-1]
            utime = last.get("utime")
            if utime is not None and utime < cutoff:
                return collected
            lt = (last.get("transaction_id") or {}).get("lt")
            tx_hash = (last.get("transaction_id") or {}).get("hash")
            if not (lt and tx_hash):
                return collected
        logger.warning("Stopped paging %s after %s pages", address, self._max_pages)
        return collected

    async def check(self, order: Order) -> RailCheck:
        if not order.settlement_target:
            raise TransportError(f"order {order.id} has no destination address")

        transactions = await self.transactions_since(order.settlement_target, order.created_at)
        received = 0
        tx_hashes: list[str] = []
        for tx in transactions:
            in_msg = tx.get("in_msg") or {}
            if (in_msg.get("message") or "").strip() != order.external_ref:
                continue
            try:
                received += int(in_msg.get("value") or 0)
            except (TypeError, ValueError):
                logger.warning("Unparseable value in transaction for order %s: %r", order.id, in_msg.get("value"))
                continue
            tx_hash = (tx.get("transaction_id") or {}).get("hash")
            if tx_hash:
                tx_hashes.append(tx_hash)

        if received >= order.settlement_amount:
            return RailCheck(RailOutcome.PAID, detail=f"tx {', '.join(tx_hashes) or 'unknown'}")
        if received:
            logger.warning(
                "Order %s partially paid: %s of %s nanotoken",
                order.id,
                received,
                order.settlement_amount,
            )
            return RailCheck(RailOutcome.PENDING, detail=f"received {received} of {order.settlement_amount}")
        return RailCheck(RailOutcome.PENDING)


def _tx_key(tx: dict) -> tuple:
    tx_id = tx.get("transaction_id") or {}
    return tx_id.get("lt"), tx_id.get("hash")
