"""Simple dependency container for wiring core services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from coinpay.core.config import Settings, get_settings
from coinpay.infrastructure.database.repositories import SqlOrderStore
from coinpay.infrastructure.database.session import build_engine, create_session_factory
from coinpay.infrastructure.rails import PaystackRail, TonCenterRail
from coinpay.interfaces.ws.manager import ConnectionManager, WebSocketNotifier
from coinpay.modules.notifications import CompositeNotifier, LoggingNotifier
from coinpay.modules.orders import OrderLifecycleManager, PaymentPolicy, PollScheduler, Rail, SettlementRail
from coinpay.modules.pricing import PriceOracle, StaticPriceOracle

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    connections: ConnectionManager
    oracle: PriceOracle
    rails: dict[Rail, SettlementRail]
    orders: OrderLifecycleManager

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        engine: Optional[AsyncEngine] = None,
        oracle: Optional[PriceOracle] = None,
        rails: Optional[dict[Rail, SettlementRail]] = None,
    ) -> "ApplicationContainer":
        """Build the object graph; tests pass fakes for the outbound edges."""
        settings = settings or get_settings()
        engine = engine or build_engine(settings)
        session_factory = create_session_factory(engine)
        connections = ConnectionManager()
        oracle = oracle or StaticPriceOracle(Decimal(settings.oracle.static_rate))
        if rails is None:
            rails = {
                Rail.ON_CHAIN: TonCenterRail(settings.ton),
                Rail.FIAT_GATEWAY: PaystackRail(settings.paystack, currency=settings.payments.fiat_currency),
            }
        orders = OrderLifecycleManager(
            store=SqlOrderStore(session_factory),
            oracle=oracle,
            rails=rails,
            notifier=CompositeNotifier([LoggingNotifier(), WebSocketNotifier(connections)]),
            scheduler=PollScheduler(settings.poll_interval),
            policy=PaymentPolicy.from_settings(settings.payments),
        )
        if not settings.payments.destination_address:
            logger.warning("No on-chain destination address configured; on-chain orders will be refused")
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            connections=connections,
            oracle=oracle,
            rails=dict(rails),
            orders=orders,
        )

    async def close(self) -> None:
        await self.orders.scheduler.shutdown()
        for rail in self.rails.values():
            close = getattr(rail, "close", None)
            if close is not None:
                await close()
        await self.engine.dispose()


__all__ = ["ApplicationContainer"]
