"""Contracts of the two settlement rails as the lifecycle manager sees them."""

from __future__ import annotations

from typing import Protocol

from .models import CheckoutSession, Order, RailCheck


class SettlementRail(Protocol):
    async def check(self, order: Order) -> RailCheck:
        """Ask the rail whether ``order`` was paid.

        Raises ``TransportError`` when the rail cannot be reached; that is
        never an answer about the payment itself.
        """
        ...


class CheckoutGateway(SettlementRail, Protocol):
    async def open_checkout(self, order: Order) -> CheckoutSession:
        ...

    def verify_signature(self, body: bytes, signature: str | None) -> bool:
        ...
