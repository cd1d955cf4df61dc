"""Wallet session specific exceptions."""

from coinpay.modules.common.exceptions import OrderError, PaymentError


class ConnectionRejected(PaymentError):
    """Raised when the user refuses to connect a wallet."""

    code = "ConnectionRejected"


class UserRejected(OrderError):
    """The user declined the transfer. Terminal for the order, never retried."""

    code = "UserRejected"
