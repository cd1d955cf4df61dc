"""Order and ledger dependency providers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coinpay.core.container import ApplicationContainer
from coinpay.modules.ledger import LedgerService
from coinpay.modules.orders import OrderLifecycleManager

from .container import get_container
from .database import get_db_session


def get_order_manager(container: ApplicationContainer = Depends(get_container)) -> OrderLifecycleManager:
    return container.orders


def get_ledger_service(db: AsyncSession = Depends(get_db_session)) -> LedgerService:
    return LedgerService.with_session(db)


__all__ = [
    "get_ledger_service",
    "get_order_manager",
]
