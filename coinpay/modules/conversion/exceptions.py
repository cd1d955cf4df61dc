"""Conversion specific exceptions."""

from coinpay.modules.common.exceptions import PaymentError


class InvalidAmount(PaymentError):
    """Raised when a purchase amount is not a positive finite number."""

    code = "InvalidAmount"


class InvalidRate(PaymentError):
    """Raised when the injected rate is not a positive finite number."""

    code = "InvalidRate"
