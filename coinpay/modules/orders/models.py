"""Domain models for payment orders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class Rail(str, Enum):
    ON_CHAIN = "on_chain"
    FIAT_GATEWAY = "fiat_gateway"


class OrderStatus(str, Enum):
    CREATED = "created"
    AWAITING_SETTLEMENT = "awaiting_settlement"
    SETTLED = "settled"
    CREDITED = "credited"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def confirmation(self) -> str:
        """Coarse answer for the confirmation poll: pending, paid or failed."""
        if self in (OrderStatus.SETTLED, OrderStatus.CREDITED):
            return "paid"
        if self in (OrderStatus.FAILED, OrderStatus.EXPIRED):
            return "failed"
        return "pending"


TERMINAL_STATUSES = frozenset({OrderStatus.CREDITED, OrderStatus.FAILED, OrderStatus.EXPIRED})

# Forward-only transition table; anything not listed is rejected.
TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset(
        {OrderStatus.AWAITING_SETTLEMENT, OrderStatus.FAILED, OrderStatus.EXPIRED}
    ),
    OrderStatus.AWAITING_SETTLEMENT: frozenset(
        {OrderStatus.SETTLED, OrderStatus.FAILED, OrderStatus.EXPIRED}
    ),
    OrderStatus.SETTLED: frozenset({OrderStatus.CREDITED}),
    OrderStatus.CREDITED: frozenset(),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.EXPIRED: frozenset(),
}

LINKABLE_STATUSES = frozenset({OrderStatus.AWAITING_SETTLEMENT, OrderStatus.SETTLED})


class RailOutcome(str, Enum):
    """Answer of a single confirmation check."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RailCheck:
    outcome: RailOutcome
    detail: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    authorization_url: str
    reference: str


@dataclass(slots=True)
class NewOrder:
    rail: Rail
    payer_wallet: Optional[str]
    payer_email: Optional[str]
    source_amount: Decimal
    source_currency: str
    rate: Decimal
    token_amount: Decimal
    fiat_amount: Decimal
    credit_amount: Decimal
    settlement_amount: int
    external_ref: str
    settlement_target: Optional[str]
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    rail: Rail
    status: OrderStatus
    payer_wallet: Optional[str]
    payer_email: Optional[str]
    source_amount: Decimal
    source_currency: str
    rate: Decimal
    token_amount: Decimal
    fiat_amount: Decimal
    credit_amount: Decimal
    settlement_amount: int
    external_ref: str
    settlement_target: Optional[str]
    created_at: datetime
    expires_at: datetime
    failure_reason: Optional[str] = None
    detail: Optional[str] = None
    settled_at: Optional[datetime] = None
    credited_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
