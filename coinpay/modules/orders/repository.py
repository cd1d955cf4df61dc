"""Order store contract."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Collection, Protocol, Sequence

from .models import NewOrder, Order, OrderStatus


class OrderStore(Protocol):
    """Persistence contract for orders.

    Every status change is conditional on the current status so concurrent
    writers for one order serialize on the store and at most one of them wins.
    """

    async def create(self, order: NewOrder) -> Order:
        ...

    async def get(self, order_id: str) -> Order | None:
        ...

    async def get_by_external_ref(self, external_ref: str) -> Order | None:
        ...

    async def transition(
        self,
        order_id: str,
        *,
        from_statuses: Collection[OrderStatus],
        to_status: OrderStatus,
        **changes: Any,
    ) -> Order | None:
        """Move the order to ``to_status`` if it is in ``from_statuses``.

        Returns the updated order, or ``None`` when the guard did not match.
        """
        ...

    async def link_wallet(
        self,
        order_id: str,
        wallet: str,
        *,
        allowed: Collection[OrderStatus],
    ) -> Order | None:
        """Bind ``wallet`` when the status is allowed and no other wallet is bound."""
        ...

    async def credit(self, order_id: str, *, credited_at: datetime) -> Order | None:
        """Apply the ledger credit and mark the order CREDITED.

        Keyed on ``(order_id, status=SETTLED)`` with a bound wallet; only the
        first caller gets the order back, everybody else gets ``None``.
        """
        ...

    async def list_by_status(self, statuses: Collection[OrderStatus], limit: int = 500) -> Sequence[Order]:
        ...

    async def list_overdue(self, now: datetime, statuses: Collection[OrderStatus]) -> Sequence[Order]:
        ...

    async def list_by_wallet(self, wallet: str, limit: int = 50, offset: int = 0) -> Sequence[Order]:
        ...
