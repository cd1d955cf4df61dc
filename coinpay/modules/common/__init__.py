"""Shared abstractions used across payment modules."""

from .exceptions import OrderError, PaymentError, TransportError

__all__ = ["OrderError", "PaymentError", "TransportError"]
