"""Reusable FastAPI dependencies."""

from .container import get_container
from .database import get_db_session
from .orders import get_ledger_service, get_order_manager

__all__ = [
    "get_container",
    "get_db_session",
    "get_ledger_service",
    "get_order_manager",
]
