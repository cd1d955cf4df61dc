"""Base exceptions shared by the payment modules."""

from __future__ import annotations


class PaymentError(Exception):
    """Base class for payment domain errors."""

    code = "PaymentError"


class OrderError(PaymentError):
    """An error tied to a specific order.

    Carries the order id and the last status the caller saw so failures can be
    audited without another lookup.
    """

    def __init__(self, order_id: str, status: str | None = None, message: str | None = None) -> None:
        self.order_id = order_id
        self.status = status
        self.message = message or self.code
        super().__init__(f"{self.message} (order={order_id}, status={status})")


class TransportError(PaymentError):
    """Network or protocol failure talking to a settlement rail.

    Transient: retried by the poll loop and never turned into an order failure
    on its own.
    """

    code = "TransportError"
