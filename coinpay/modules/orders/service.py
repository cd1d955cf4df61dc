"""Order lifecycle manager: the reconciliation core.

Creates orders with frozen amounts, drives them through the on-chain or the
fiat-gateway rail and converges both rails on a single ledger credit. All
status changes go through ``_move``, which is a compare-and-set on the status
the caller observed, so loops, callbacks and requests can race on one order
without tearing it.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Mapping, Optional, Sequence

from coinpay.modules.common.exceptions import OrderError, TransportError
from coinpay.modules.conversion import SourceCurrency, convert, settlement_units
from coinpay.modules.pricing import PriceOracle, PriceUnavailable
from coinpay.modules.wallets import (
    Rejected,
    SendResult,
    Sent,
    TimedOut,
    TransferRequest,
    TransportFailed,
    UserRejected,
    WalletConnector,
)

from .exceptions import (
    InvalidOrderRequest,
    InvalidOrderState,
    OrderExpired,
    OrderNotFound,
    RailVerificationFailed,
)
from .models import (
    LINKABLE_STATUSES,
    TRANSITIONS,
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

if TYPE_CHECKING:
    from coinpay.core.config import PaymentSettings
    from coinpay.modules.notifications import ReconciliationNotifier

logger = logging.getLogger(__name__)

_OPEN_STATUSES = frozenset({OrderStatus.CREATED, OrderStatus.AWAITING_SETTLEMENT})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class PaymentPolicy:
    destination_address: str
    onchain_expiry: timedelta = timedelta(minutes=15)
    gateway_expiry: timedelta = timedelta(minutes=60)

    @classmethod
    def from_settings(cls, settings: "PaymentSettings") -> "PaymentPolicy":
        return cls(
            destination_address=settings.destination_address,
            onchain_expiry=timedelta(minutes=settings.onchain_expiry_minutes),
            gateway_expiry=timedelta(minutes=settings.gateway_expiry_minutes),
        )

    def expiry_for(self, rail: Rail) -> timedelta:
        return self.onchain_expiry if rail is Rail.ON_CHAIN else self.gateway_expiry


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class OrderLifecycleManager:
    def __init__(
        self,
        *,
        store: OrderStore,
        oracle: PriceOracle,
        rails: Mapping[Rail, SettlementRail],
        notifier: "ReconciliationNotifier",
        scheduler: PollScheduler,
        policy: PaymentPolicy,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._oracle = oracle
        self._rails = dict(rails)
        self._notifier = notifier
        self._scheduler = scheduler
        self._policy = policy
        self._clock = clock

    @property
    def scheduler(self) -> PollScheduler:
        return self._scheduler

    # ------------------------------------------------------------------
    # creation
    # ------------------------------------------------------------------

    async def create_order(
        self,
        *,
        rail: Rail | str,
        source_amount: Decimal | int | str,
        source_currency: SourceCurrency | str,
        payer_wallet: Optional[str] = None,
        payer_email: Optional[str] = None,
    ) -> Order:
        rail = Rail(rail)
        payer_wallet = _clean(payer_wallet)
        payer_email = _clean(payer_email)

        if rail is Rail.ON_CHAIN:
            if not payer_wallet:
                raise InvalidOrderRequest("on-chain orders need the payer wallet address")
            if not self._policy.destination_address:
                raise InvalidOrderRequest("no on-chain destination address is configured")
            payer_email = None
        elif not payer_email:
            raise InvalidOrderRequest("gateway orders need the payer email")

        # the only rate fetch for this order; amounts are frozen from here on
        try:
            rate = await self._oracle.get_rate()
        except PriceUnavailable:
            raise
        except Exception as exc:
            raise PriceUnavailable(f"price oracle failed: {exc}") from exc

        conversion = convert(source_amount, source_currency, rate)
        settlement_amount = settlement_units(conversion, rail)
        created_at = self._clock()

        if rail is Rail.ON_CHAIN:
            settlement_target: Optional[str] = self._policy.destination_address
            external_ref = f"coin_{uuid.uuid4().hex[:20]}"
        else:
            settlement_target = None
            external_ref = f"order_{uuid.uuid4().hex}"

        order = await self._store.create(
            NewOrder(
                rail=rail,
                payer_wallet=payer_wallet,
                payer_email=payer_email,
                source_amount=Decimal(str(source_amount)),
                source_currency=SourceCurrency(source_currency).value,
                rate=conversion.rate,
                token_amount=conversion.token_amount,
                fiat_amount=conversion.fiat_amount,
                credit_amount=conversion.credit_amount,
                settlement_amount=settlement_amount,
                external_ref=external_ref,
                settlement_target=settlement_target,
                created_at=created_at,
                expires_at=created_at + self._policy.expiry_for(rail),
            )
        )
        logger.info(
            "Order %s created: rail=%s settlement=%s credit=%s ref=%s",
            order.id,
            rail.value,
            order.settlement_amount,
            order.credit_amount,
            order.external_ref,
        )
        await self._notify(order)
        return order

    def transfer_request(self, order: Order) -> TransferRequest:
        self._require_rail(order, Rail.ON_CHAIN)
        return TransferRequest(
            destination=order.settlement_target or self._policy.destination_address,
            amount=order.settlement_amount,
            memo=order.external_ref,
            valid_until=int(order.expires_at.timestamp()),
        )

    # ------------------------------------------------------------------
    # on-chain rail
    # ------------------------------------------------------------------

    async def submit_onchain(self, order_id: str, connector: WalletConnector) -> Order:
        """Have the wallet sign and send the transfer, then record the outcome."""
        order = await self._get(order_id)
        self._require_rail(order, Rail.ON_CHAIN)
        if order.status is not OrderStatus.CREATED:
            raise InvalidOrderState(order.id, order.status.value, "transfer already submitted")
        await self._reject_if_expired(order)

        request = self.transfer_request(order)
        result = await connector.sign_and_send(
            request.destination,
            request.amount,
            request.memo,
            request.valid_until,
        )
        return await self.record_wallet_result(order_id, result)

    async def record_wallet_result(self, order_id: str, result: SendResult) -> Order:
        order = await self._get(order_id)
        self._require_rail(order, Rail.ON_CHAIN)

        if isinstance(result, (Sent, TimedOut)):
            if order.status is OrderStatus.AWAITING_SETTLEMENT:
                self.start_polling(order.id)
                return order
            if order.status is not OrderStatus.CREATED:
                raise InvalidOrderState(order.id, order.status.value, "wallet result arrived too late")
            await self._reject_if_expired(order)
            # a timed out wallet may still broadcast, so watch the chain either way
            if isinstance(result, Sent):
                detail = f"broadcast {result.tx_hash}" if result.tx_hash else "broadcast"
            else:
                detail = result.reason
            updated = await self._move(order, OrderStatus.AWAITING_SETTLEMENT, detail=detail)
            if updated.status is OrderStatus.AWAITING_SETTLEMENT:
                self.start_polling(updated.id)
            return updated

        if isinstance(result, Rejected):
            if order.status is not OrderStatus.CREATED:
                raise InvalidOrderState(order.id, order.status.value, "rejection for a submitted transfer")
            return await self._fail(order, UserRejected(order.id, order.status.value, result.reason))

        if isinstance(result, TransportFailed):
            logger.warning("Wallet transport failed for order %s: %s", order.id, result.reason)
            await self._notify(order, detail=result.reason)
            return order

        raise TypeError(f"unknown wallet result: {result!r}")

    # ------------------------------------------------------------------
    # fiat gateway rail
    # ------------------------------------------------------------------

    async def open_checkout(self, order_id: str) -> Order:
        order = await self._get(order_id)
        self._require_rail(order, Rail.FIAT_GATEWAY)
        if order.status is OrderStatus.AWAITING_SETTLEMENT and order.settlement_target:
            return order
        if order.status is not OrderStatus.CREATED:
            raise InvalidOrderState(order.id, order.status.value, "checkout can only be opened once")
        await self._reject_if_expired(order)

        session = await self._gateway().open_checkout(order)
        updated = await self._move(
            order,
            OrderStatus.AWAITING_SETTLEMENT,
            settlement_target=session.authorization_url,
            detail="checkout opened",
        )
        if updated.status is OrderStatus.AWAITING_SETTLEMENT:
            self.start_polling(updated.id)
        return updated

    async def handle_gateway_reference(self, reference: str) -> Order:
        """Discovery through the gateway redirect or webhook."""
        order = await self._store.get_by_external_ref(reference)
        if order is None:
            raise OrderNotFound(reference, None, "unknown gateway reference")
        self._require_rail(order, Rail.FIAT_GATEWAY)

        if order.status is OrderStatus.CREATED:
            if order.is_expired(self._clock()):
                return await self._expire(order)
            # checkout was opened client side without telling us
            order = await self._move(order, OrderStatus.AWAITING_SETTLEMENT, detail="checkout opened by client")
        if order.status is not OrderStatus.AWAITING_SETTLEMENT:
            return order
        if order.is_expired(self._clock()):
            return await self._expire(order)

        try:
            check = await self._gateway().check(order)
        except TransportError:
            # the loop keeps asking until the gateway answers or the deadline passes
            self.start_polling(order.id)
            raise
        result = await self._apply_check(order, check)
        if result.status is OrderStatus.AWAITING_SETTLEMENT:
            self.start_polling(result.id)
        return result

    def verify_gateway_signature(self, body: bytes, signature: Optional[str]) -> bool:
        return self._gateway().verify_signature(body, signature)

    # ------------------------------------------------------------------
    # confirmation polling
    # ------------------------------------------------------------------

    async def poll_once(self, order_id: str) -> Order:
        """One confirmation check. Transport errors leave the order untouched."""
        order = await self._get(order_id)
        if order.status is not OrderStatus.AWAITING_SETTLEMENT:
            return order
        if order.is_expired(self._clock()):
            return await self._expire(order)

        try:
            check = await self._rails[order.rail].check(order)
        except TransportError as exc:
            logger.warning("Confirmation check for order %s failed, will retry: %s", order.id, exc)
            return order
        return await self._apply_check(order, check)

    def start_polling(self, order_id: str) -> bool:
        return self._scheduler.start(order_id, self._poll_step)

    def stop_polling(self, order_id: str) -> None:
        self._scheduler.cancel(order_id)

    async def _poll_step(self, order_id: str) -> bool:
        order = await self.poll_once(order_id)
        return order.status is OrderStatus.AWAITING_SETTLEMENT

    async def _apply_check(self, order: Order, check: RailCheck) -> Order:
        if check.outcome is RailOutcome.PENDING:
            return order

        if order.is_expired(self._clock()):
            if check.outcome is RailOutcome.PAID:
                logger.warning(
                    "Order %s confirmed paid after its deadline (%s); left expired for manual refund",
                    order.id,
                    check.detail,
                )
            return await self._expire(order, "confirmation arrived after the deadline")

        if check.outcome is RailOutcome.FAILED:
            failure = RailVerificationFailed(order.id, order.status.value, check.detail or "rail reported failure")
            return await self._fail(order, failure)

        settled = await self._move(order, OrderStatus.SETTLED, settled_at=self._clock(), detail=check.detail)
        if settled.status is not OrderStatus.SETTLED:
            return settled
        if settled.payer_wallet is None:
            logger.info("Order %s settled, waiting for a wallet to be linked", settled.id)
            return settled
        credited, _ = await self._apply_credit(settled)
        return credited

    # ------------------------------------------------------------------
    # late-link and credit
    # ------------------------------------------------------------------

    async def link_wallet(self, order_id: str, wallet: str) -> Order:
        address = _clean(wallet)
        if not address:
            raise InvalidOrderRequest("wallet address is empty")
        order = await self._get(order_id)
        if order.status not in LINKABLE_STATUSES:
            raise InvalidOrderState(order.id, order.status.value, f"cannot link a wallet to a {order.status.value} order")
        if order.payer_wallet and order.payer_wallet != address:
            raise InvalidOrderState(order.id, order.status.value, "order is bound to another wallet")

        linked = await self._store.link_wallet(order.id, address, allowed=LINKABLE_STATUSES)
        if linked is None:
            current = await self._get(order.id)
            raise InvalidOrderState(current.id, current.status.value, "order changed while linking")
        logger.info("Wallet %s linked to order %s (%s)", address, linked.id, linked.status.value)

        if linked.status is OrderStatus.SETTLED:
            credited, _ = await self._apply_credit(linked)
            return credited
        await self._notify(linked, detail="wallet linked")
        return linked

    async def credit(self, order_id: str) -> bool:
        """Apply the ledger credit; True only for the single caller that wins."""
        order = await self._get(order_id)
        _, applied = await self._apply_credit(order)
        return applied

    async def _apply_credit(self, order: Order) -> tuple[Order, bool]:
        # the one call site of the ledger mutation
        credited = await self._store.credit(order.id, credited_at=self._clock())
        if credited is None:
            return await self._get(order.id), False
        logger.info(
            "Order %s credited: %s coins to %s",
            credited.id,
            credited.credit_amount,
            credited.payer_wallet,
        )
        await self._notify(credited, detail=f"{credited.credit_amount} coins credited")
        return credited, True

    # ------------------------------------------------------------------
    # deadlines and recovery
    # ------------------------------------------------------------------

    async def expire_overdue(self) -> list[Order]:
        overdue = await self._store.list_overdue(self._clock(), _OPEN_STATUSES)
        return [await self._expire(order) for order in overdue]

    async def run_expiry_sweeper(self, interval: float) -> None:
        try:
            while True:
                try:
                    expired = await self.expire_overdue()
                    if expired:
                        logger.info("Expired %d overdue orders", len(expired))
                except Exception as exc:  # pylint: disable=broad-except
                    logger.error("Expiry sweep failed: %s", exc)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.debug("Expiry sweeper cancelled")

    async def resume(self) -> None:
        """Pick up work left behind by a previous process."""
        for order in await self._store.list_by_status({OrderStatus.AWAITING_SETTLEMENT}):
            self.start_polling(order.id)
        for order in await self._store.list_by_status({OrderStatus.SETTLED}):
            if order.payer_wallet:
                await self._apply_credit(order)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    async def get_order(self, order_id: str) -> Order:
        return await self._get(order_id)

    async def history(self, wallet: str, limit: int = 50, offset: int = 0) -> Sequence[Order]:
        return await self._store.list_by_wallet(wallet, limit, offset)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    async def _get(self, order_id: str) -> Order:
        order = await self._store.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def _gateway(self) -> CheckoutGateway:
        rail = self._rails.get(Rail.FIAT_GATEWAY)
        if rail is None:
            raise InvalidOrderRequest("no fiat gateway is configured")
        return rail  # type: ignore[return-value]

    @staticmethod
    def _require_rail(order: Order, rail: Rail) -> None:
        if order.rail is not rail:
            raise InvalidOrderState(order.id, order.status.value, f"operation needs a {rail.value} order")

    async def _reject_if_expired(self, order: Order) -> None:
        if order.is_expired(self._clock()):
            expired = await self._expire(order)
            raise OrderExpired(expired.id, expired.status.value, "order deadline has passed")

    async def _move(self, order: Order, to_status: OrderStatus, **changes) -> Order:
        if to_status not in TRANSITIONS[order.status]:
            raise InvalidOrderState(order.id, order.status.value, f"{order.status.value} -> {to_status.value} not allowed")
        updated = await self._store.transition(
            order.id,
            from_statuses={order.status},
            to_status=to_status,
            **changes,
        )
        if updated is None:
            current = await self._get(order.id)
            logger.info(
                "Order %s already moved to %s, skipping %s -> %s",
                order.id,
                current.status.value,
                order.status.value,
                to_status.value,
            )
            return current
        logger.info("Order %s: %s -> %s", order.id, order.status.value, to_status.value)
        if to_status is OrderStatus.SETTLED or to_status.is_terminal:
            self._scheduler.cancel(order.id)
        await self._notify(updated)
        return updated

    async def _fail(self, order: Order, failure: OrderError) -> Order:
        return await self._move(
            order,
            OrderStatus.FAILED,
            failure_reason=failure.code,
            detail=failure.message,
        )

    async def _expire(self, order: Order, detail: Optional[str] = None) -> Order:
        if order.status not in _OPEN_STATUSES:
            return order
        failure = OrderExpired(order.id, order.status.value, detail or "deadline passed before settlement")
        return await self._move(
            order,
            OrderStatus.EXPIRED,
            failure_reason=failure.code,
            detail=failure.message,
        )

    async def _notify(self, order: Order, detail: Optional[str] = None) -> None:
        try:
            await self._notifier.on_order_update(order.id, order.status, detail or order.detail)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Notifier failed for order %s: %s", order.id, exc)
