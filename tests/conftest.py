"""
Pytest configuration and shared fixtures for the payment service tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from coinpay.core.config import Settings
from coinpay.infrastructure.database.repositories import SqlOrderStore
from coinpay.infrastructure.database.session import build_engine, create_session_factory, init_db
from coinpay.modules.ledger import LedgerService
from coinpay.modules.orders import (
    CheckoutSession,
    OrderLifecycleManager,
    PaymentPolicy,
    PollScheduler,
    Rail,
    RailCheck,
    RailOutcome,
)
from coinpay.modules.pricing import StaticPriceOracle
from coinpay.modules.wallets import Sent, WalletSession, dispatch_status

DESTINATION = "EQDestinationAddress0000000000000000000000000000"
PAYER = "EQPayerWallet00000000000000000000000000000000000"
EMAIL = "buyer@example.com"

PENDING = RailCheck(RailOutcome.PENDING)
PAID = RailCheck(RailOutcome.PAID, detail="confirmed")
FAILED = RailCheck(RailOutcome.FAILED, detail="declined")


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeRail:
    """Answers queued checks in order, then repeats the last one."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes) or [PENDING]
        self.checked: list[str] = []

    def answer(self, *outcomes) -> None:
        self.outcomes = list(outcomes)

    async def check(self, order):
        self.checked.append(order.id)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeGateway(FakeRail):
    signature = "valid-signature"

    def __init__(self, *outcomes) -> None:
        super().__init__(*outcomes)
        self.opened: list[str] = []

    async def open_checkout(self, order):
        self.opened.append(order.id)
        return CheckoutSession(
            authorization_url=f"https://checkout.example.com/{order.external_ref}",
            reference=order.external_ref,
        )

    def verify_signature(self, body: bytes, signature: Optional[str]) -> bool:
        return signature == self.signature


class RecordingNotifier:
    def __init__(self) -> None:
        self.updates: list[tuple] = []

    async def on_order_update(self, order_id, status, detail):
        self.updates.append((order_id, status, detail))

    def statuses(self, order_id: str) -> list:
        return [status for oid, status, _ in self.updates if oid == order_id]


class FakeWalletConnector:
    def __init__(self, address: str = PAYER, result=None) -> None:
        self.address = address
        self.result = result if result is not None else Sent(tx_hash="0xabc")
        self.handlers: list = []
        self.requests: list[tuple] = []
        self.connected = False

    def on_status_change(self, handler):
        self.handlers.append(handler)
        return lambda: self.handlers.remove(handler)

    async def emit(self, session: WalletSession) -> None:
        for handler in list(self.handlers):
            await dispatch_status(handler, session)

    async def connect(self) -> WalletSession:
        self.connected = True
        return WalletSession(connected=True, address=self.address)

    async def disconnect(self) -> None:
        self.connected = False

    async def sign_and_send(self, destination, amount, memo, valid_until):
        self.requests.append((destination, amount, memo, valid_until))
        return self.result


class Balances:
    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    async def balance(self, wallet: str) -> Decimal:
        async with self._session_factory() as session:
            snapshot = await LedgerService.with_session(session).balance(wallet)
            return snapshot.credit_balance

    async def entries(self, wallet: str) -> list:
        async with self._session_factory() as session:
            return await LedgerService.with_session(session).entries(wallet)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        database={"url": f"sqlite+aiosqlite:///{tmp_path / 'coinpay-test.db'}"},
        payments={"destination_address": DESTINATION, "poll_interval_seconds": 0.01},
        oracle={"static_rate": "1500"},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def chain_rail():
    return FakeRail()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def oracle():
    return StaticPriceOracle(Decimal("1500"))


@pytest.fixture
async def session_factory(settings):
    engine = build_engine(settings)
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlOrderStore(session_factory)


@pytest.fixture
def balances(session_factory):
    return Balances(session_factory)


@pytest.fixture
async def manager(store, oracle, chain_rail, gateway, notifier, clock):
    scheduler = PollScheduler(interval=0.01)
    manager = OrderLifecycleManager(
        store=store,
        oracle=oracle,
        rails={Rail.ON_CHAIN: chain_rail, Rail.FIAT_GATEWAY: gateway},
        notifier=notifier,
        scheduler=scheduler,
        policy=PaymentPolicy(destination_address=DESTINATION),
        clock=clock,
    )
    yield manager
    await scheduler.shutdown(timeout=1.0)
