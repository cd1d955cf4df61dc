"""Wallet session exports"""

from .connector import StatusHandler, WalletConnector, dispatch_status
from .exceptions import ConnectionRejected, UserRejected
from .models import Rejected, SendResult, Sent, TimedOut, TransferRequest, TransportFailed, WalletSession

__all__ = [
    "ConnectionRejected",
    "Rejected",
    "SendResult",
    "Sent",
    "StatusHandler",
    "TimedOut",
    "TransferRequest",
    "TransportFailed",
    "UserRejected",
    "WalletConnector",
    "WalletSession",
    "dispatch_status",
]
