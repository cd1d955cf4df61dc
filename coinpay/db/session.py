"""Database session helpers.

Keeps the short ``coinpay.db.session`` import path used by the ORM models and
the maintenance scripts while delegating to ``coinpay.infrastructure.database``.
"""

from __future__ import annotations

from coinpay.infrastructure.database import Base, get_engine, init_db  # noqa: F401

__all__ = [
    "Base",
    "get_engine",
    "init_db",
]
