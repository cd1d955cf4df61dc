"""Feature modules and their public exports."""

from . import common, conversion, pricing, wallets, orders, notifications, ledger

__all__ = [
    "common",
    "conversion",
    "pricing",
    "wallets",
    "orders",
    "notifications",
    "ledger",
]
