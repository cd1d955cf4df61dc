"""Order lifecycle exports"""

from .context import CheckoutContext
from .exceptions import (
    DoubleCreditAttempt,
    InvalidOrderRequest,
    InvalidOrderState,
    OrderExpired,
    OrderNotFound,
    RailVerificationFailed,
)
from .models import (
    CheckoutSession,
    NewOrder,
    Order,
    OrderStatus,
    Rail,
    RailCheck,
    RailOutcome,
)
from .polling import PollScheduler
from .rails import CheckoutGateway, SettlementRail
from .repository import OrderStore
from .service import OrderLifecycleManager, PaymentPolicy

__all__ = [
    "CheckoutContext",
    "CheckoutGateway",
    "CheckoutSession",
    "DoubleCreditAttempt",
    "InvalidOrderRequest",
    "InvalidOrderState",
    "NewOrder",
    "Order",
    "OrderExpired",
    "OrderLifecycleManager",
    "OrderNotFound",
    "OrderStatus",
    "OrderStore",
    "PaymentPolicy",
    "PollScheduler",
    "Rail",
    "RailCheck",
    "RailOutcome",
    "RailVerificationFailed",
    "SettlementRail",
]
