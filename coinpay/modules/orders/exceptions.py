"""Order lifecycle exceptions."""

from coinpay.modules.common.exceptions import OrderError, PaymentError


class OrderNotFound(OrderError):
    code = "OrderNotFound"


class InvalidOrderRequest(PaymentError):
    """Raised when a creation request misses a rail-specific field."""

    code = "InvalidOrderRequest"


class InvalidOrderState(OrderError):
    """The operation is not allowed in the order's current status."""

    code = "InvalidOrderState"


class RailVerificationFailed(OrderError):
    """The rail explicitly reported the payment as failed. Terminal."""

    code = "RailVerificationFailed"


class OrderExpired(OrderError):
    """The order's deadline passed before settlement. Terminal."""

    code = "OrderExpired"


class DoubleCreditAttempt(OrderError):
    """A second ledger entry was attempted for the same order."""

    code = "DoubleCreditAttempt"
