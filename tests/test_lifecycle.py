import asyncio
from decimal import Decimal

import pytest

from coinpay.modules.common.exceptions import TransportError
from coinpay.modules.conversion import InvalidAmount
from coinpay.modules.orders import (
    InvalidOrderRequest,
    InvalidOrderState,
    OrderExpired,
    OrderNotFound,
    OrderStatus,
    Rail,
)
from coinpay.modules.pricing import PriceUnavailable
from coinpay.modules.wallets import Rejected, Sent, TimedOut, TransportFailed

from conftest import DESTINATION, EMAIL, FAILED, PAID, PENDING, PAYER, FakeWalletConnector

pytestmark = pytest.mark.anyio


async def onchain_order(manager, amount="10"):
    return await manager.create_order(
        rail=Rail.ON_CHAIN,
        source_amount=amount,
        source_currency="token",
        payer_wallet=PAYER,
    )


async def gateway_order(manager, wallet=None, amount="15000"):
    return await manager.create_order(
        rail=Rail.FIAT_GATEWAY,
        source_amount=amount,
        source_currency="fiat",
        payer_wallet=wallet,
        payer_email=EMAIL,
    )


class TestCreateOrder:
    async def test_onchain_order_is_frozen_at_creation(self, manager, clock):
        order = await onchain_order(manager)
        assert order.status is OrderStatus.CREATED
        assert order.token_amount == Decimal("10")
        assert order.fiat_amount == Decimal("15000")
        assert order.credit_amount == Decimal("50")
        assert order.settlement_amount == 10_000_000_000
        assert order.settlement_target == DESTINATION
        assert order.external_ref.startswith("coin_")
        assert order.payer_email is None
        assert order.expires_at == clock.now + manager._policy.onchain_expiry

    async def test_gateway_order_settles_in_minor_units(self, manager, clock):
        order = await gateway_order(manager)
        assert order.settlement_amount == 1_500_000
        assert order.settlement_target is None
        assert order.external_ref.startswith("order_")
        assert order.payer_wallet is None
        assert order.expires_at == clock.now + manager._policy.gateway_expiry

    async def test_onchain_needs_a_wallet(self, manager):
        with pytest.raises(InvalidOrderRequest):
            await manager.create_order(rail=Rail.ON_CHAIN, source_amount="10", source_currency="token")

    async def test_gateway_needs_an_email(self, manager):
        with pytest.raises(InvalidOrderRequest):
            await manager.create_order(
                rail=Rail.FIAT_GATEWAY,
                source_amount="10",
                source_currency="token",
                payer_wallet=PAYER,
            )

    async def test_oracle_failure_surfaces_as_price_unavailable(self, manager, oracle, monkeypatch):
        async def broken():
            raise RuntimeError("feed down")

        monkeypatch.setattr(oracle, "get_rate", broken)
        with pytest.raises(PriceUnavailable):
            await onchain_order(manager)

    async def test_amount_too_large_is_rejected_before_storing(self, manager, store):
        with pytest.raises(InvalidAmount):
            await onchain_order(manager, amount="2000000000")
        assert await store.list_by_status([OrderStatus.CREATED]) == []

    async def test_notifies_creation(self, manager, notifier):
        order = await onchain_order(manager)
        assert notifier.statuses(order.id) == [OrderStatus.CREATED]


class TestOnChainRail:
    async def test_pending_three_times_then_paid(self, manager, chain_rail, notifier, balances):
        chain_rail.answer(PENDING, PENDING, PENDING, PAID)
        connector = FakeWalletConnector()
        order = await onchain_order(manager)

        submitted = await manager.submit_onchain(order.id, connector)
        assert submitted.status is OrderStatus.AWAITING_SETTLEMENT
        assert connector.requests == [
            (DESTINATION, 10_000_000_000, order.external_ref, int(order.expires_at.timestamp()))
        ]

        await manager.scheduler.wait(order.id)

        final = await manager.get_order(order.id)
        assert final.status is OrderStatus.CREDITED
        assert len(chain_rail.checked) == 4
        assert notifier.statuses(order.id) == [
            OrderStatus.CREATED,
            OrderStatus.AWAITING_SETTLEMENT,
            OrderStatus.SETTLED,
            OrderStatus.CREDITED,
        ]
        assert await balances.balance(PAYER) == Decimal("50")
        assert len(await balances.entries(PAYER)) == 1
        assert not manager.scheduler.is_active(order.id)

    async def test_never_paid_expires_without_credit(self, manager, chain_rail, clock, balances):
        chain_rail.answer(PENDING)
        order = await onchain_order(manager)
        await manager.submit_onchain(order.id, FakeWalletConnector())
        await asyncio.sleep(0.05)

        clock.advance(minutes=16)
        await manager.scheduler.wait(order.id)

        final = await manager.get_order(order.id)
        assert final.status is OrderStatus.EXPIRED
        assert final.failure_reason == "OrderExpired"
        assert await balances.balance(PAYER) == Decimal(0)
        assert await balances.entries(PAYER) == []

    async def test_user_rejection_fails_and_is_not_retried(self, manager, chain_rail):
        order = await onchain_order(manager)
        failed = await manager.submit_onchain(order.id, FakeWalletConnector(result=Rejected()))
        assert failed.status is OrderStatus.FAILED
        assert failed.failure_reason == "UserRejected"
        assert not manager.scheduler.is_active(order.id)
        assert chain_rail.checked == []

        with pytest.raises(InvalidOrderState):
            await manager.record_wallet_result(order.id, Sent())

    async def test_timed_out_wallet_still_watches_the_chain(self, manager, chain_rail):
        chain_rail.answer(PENDING)
        order = await onchain_order(manager)
        awaiting = await manager.record_wallet_result(order.id, TimedOut())
        assert awaiting.status is OrderStatus.AWAITING_SETTLEMENT
        assert manager.scheduler.is_active(order.id)

    async def test_transport_failure_keeps_order_open(self, manager, notifier):
        order = await onchain_order(manager)
        result = await manager.record_wallet_result(order.id, TransportFailed("bridge down"))
        assert result.status is OrderStatus.CREATED
        assert notifier.updates[-1] == (order.id, OrderStatus.CREATED, "bridge down")

    async def test_submit_after_deadline_expires_order(self, manager, clock):
        order = await onchain_order(manager)
        clock.advance(minutes=20)
        with pytest.raises(OrderExpired):
            await manager.submit_onchain(order.id, FakeWalletConnector())
        assert (await manager.get_order(order.id)).status is OrderStatus.EXPIRED

    async def test_rail_failure_is_terminal(self, manager, chain_rail):
        order = await onchain_order(manager)
        await manager.record_wallet_result(order.id, Sent())
        manager.stop_polling(order.id)
        await manager.scheduler.wait(order.id)

        chain_rail.answer(FAILED)
        failed = await manager.poll_once(order.id)
        assert failed.status is OrderStatus.FAILED
        assert failed.failure_reason == "RailVerificationFailed"

    async def test_transport_error_leaves_order_untouched(self, manager, chain_rail):
        order = await onchain_order(manager)
        await manager.record_wallet_result(order.id, Sent())
        manager.stop_polling(order.id)
        await manager.scheduler.wait(order.id)

        chain_rail.answer(TransportError("toncenter unreachable"))
        unchanged = await manager.poll_once(order.id)
        assert unchanged.status is OrderStatus.AWAITING_SETTLEMENT

    async def test_paid_after_deadline_stays_expired(self, manager, chain_rail, clock, balances):
        order = await onchain_order(manager)
        await manager.record_wallet_result(order.id, Sent())
        manager.stop_polling(order.id)
        await manager.scheduler.wait(order.id)

        clock.advance(minutes=30)
        chain_rail.answer(PAID)
        result = await manager.poll_once(order.id)
        assert result.status is OrderStatus.EXPIRED
        assert await balances.balance(PAYER) == Decimal(0)


class TestGatewayRail:
    async def test_settled_then_late_link(self, manager, gateway, balances):
        gateway.answer(PAID)
        order = await gateway_order(manager)

        opened = await manager.open_checkout(order.id)
        assert opened.status is OrderStatus.AWAITING_SETTLEMENT
        assert opened.settlement_target == f"https://checkout.example.com/{order.external_ref}"
        await manager.scheduler.wait(order.id)

        settled = await manager.get_order(order.id)
        assert settled.status is OrderStatus.SETTLED
        assert settled.payer_wallet is None

        credited = await manager.link_wallet(order.id, PAYER)
        assert credited.status is OrderStatus.CREDITED
        assert credited.payer_wallet == PAYER
        assert await balances.balance(PAYER) == Decimal("50")

    async def test_link_before_settlement_credits_on_settle(self, manager, gateway, balances):
        gateway.answer(PENDING)
        order = await gateway_order(manager)
        await manager.open_checkout(order.id)

        linked = await manager.link_wallet(order.id, PAYER)
        assert linked.status is OrderStatus.AWAITING_SETTLEMENT
        assert await balances.balance(PAYER) == Decimal(0)

        gateway.answer(PAID)
        await manager.scheduler.wait(order.id)
        assert (await manager.get_order(order.id)).status is OrderStatus.CREDITED
        assert await balances.balance(PAYER) == Decimal("50")

    async def test_open_checkout_is_idempotent(self, manager, gateway):
        order = await gateway_order(manager)
        first = await manager.open_checkout(order.id)
        second = await manager.open_checkout(order.id)
        assert first.settlement_target == second.settlement_target
        assert gateway.opened == [order.id]

    async def test_redirect_discovers_paid_order(self, manager, gateway, balances):
        gateway.answer(PAID)
        order = await gateway_order(manager, wallet=PAYER)

        result = await manager.handle_gateway_reference(order.external_ref)
        assert result.status is OrderStatus.CREDITED
        assert await balances.balance(PAYER) == Decimal("50")

    async def test_redirect_keeps_polling_on_transport_error(self, manager, gateway):
        order = await gateway_order(manager)
        await manager.open_checkout(order.id)
        manager.stop_polling(order.id)
        await manager.scheduler.wait(order.id)

        gateway.answer(TransportError("gateway timeout"), PENDING)
        with pytest.raises(TransportError):
            await manager.handle_gateway_reference(order.external_ref)
        assert manager.scheduler.is_active(order.id)

    async def test_unknown_reference(self, manager):
        with pytest.raises(OrderNotFound):
            await manager.handle_gateway_reference("order_unknown")

    async def test_gateway_decline_fails_order(self, manager, gateway):
        gateway.answer(FAILED)
        order = await gateway_order(manager)
        result = await manager.handle_gateway_reference(order.external_ref)
        assert result.status is OrderStatus.FAILED


class TestLinkAndCredit:
    async def test_link_rejected_before_checkout(self, manager):
        order = await gateway_order(manager)
        with pytest.raises(InvalidOrderState):
            await manager.link_wallet(order.id, PAYER)

    async def test_link_rejected_after_expiry(self, manager, clock):
        order = await gateway_order(manager)
        await manager.open_checkout(order.id)
        manager.stop_polling(order.id)
        await manager.scheduler.wait(order.id)
        clock.advance(hours=2)
        await manager.expire_overdue()

        with pytest.raises(InvalidOrderState):
            await manager.link_wallet(order.id, PAYER)

    async def test_link_rejects_a_second_wallet(self, manager, gateway):
        gateway.answer(PENDING)
        order = await gateway_order(manager, wallet=PAYER)
        await manager.open_checkout(order.id)
        with pytest.raises(InvalidOrderState):
            await manager.link_wallet(order.id, "EQAnotherWallet")
        assert (await manager.link_wallet(order.id, PAYER)).payer_wallet == PAYER

    async def test_concurrent_credit_calls(self, manager, store, balances):
        order = await onchain_order(manager)
        await store.transition(
            order.id,
            from_statuses={OrderStatus.CREATED},
            to_status=OrderStatus.AWAITING_SETTLEMENT,
        )
        await store.transition(
            order.id,
            from_statuses={OrderStatus.AWAITING_SETTLEMENT},
            to_status=OrderStatus.SETTLED,
        )

        results = await asyncio.gather(*(manager.credit(order.id) for _ in range(10)))
        assert results.count(True) == 1
        assert await balances.balance(PAYER) == Decimal("50")

    async def test_amounts_ignore_later_rate_changes(self, manager, oracle, chain_rail, balances):
        order = await onchain_order(manager)
        oracle.set_rate("3000")
        chain_rail.answer(PAID)

        await manager.record_wallet_result(order.id, Sent())
        await manager.scheduler.wait(order.id)

        final = await manager.get_order(order.id)
        assert final.status is OrderStatus.CREDITED
        assert final.rate == Decimal("1500")
        assert final.fiat_amount == Decimal("15000")
        assert await balances.balance(PAYER) == Decimal("50")


class TestExpiryAndRecovery:
    async def test_expire_overdue_sweeps_open_orders(self, manager, clock):
        onchain = await onchain_order(manager)
        gateway = await gateway_order(manager)
        clock.advance(minutes=20)

        expired = await manager.expire_overdue()
        assert [order.id for order in expired] == [onchain.id]
        assert (await manager.get_order(gateway.id)).status is OrderStatus.CREATED

    async def test_expired_is_final(self, manager, chain_rail, clock):
        order = await onchain_order(manager)
        clock.advance(minutes=20)
        await manager.expire_overdue()

        chain_rail.answer(PAID)
        assert (await manager.poll_once(order.id)).status is OrderStatus.EXPIRED
        assert await manager.credit(order.id) is False
        with pytest.raises(InvalidOrderState):
            await manager.record_wallet_result(order.id, Sent())

    async def test_resume_restarts_loops_and_pending_credits(self, manager, store, chain_rail, balances):
        chain_rail.answer(PENDING)
        waiting = await onchain_order(manager)
        await store.transition(
            waiting.id,
            from_statuses={OrderStatus.CREATED},
            to_status=OrderStatus.AWAITING_SETTLEMENT,
        )
        settled = await onchain_order(manager, amount="2")
        await store.transition(
            settled.id,
            from_statuses={OrderStatus.CREATED},
            to_status=OrderStatus.AWAITING_SETTLEMENT,
        )
        await store.transition(
            settled.id,
            from_statuses={OrderStatus.AWAITING_SETTLEMENT},
            to_status=OrderStatus.SETTLED,
        )

        await manager.resume()

        assert (await manager.get_order(settled.id)).status is OrderStatus.CREDITED
        assert await balances.balance(PAYER) == Decimal("10")
        assert manager.scheduler.is_active(waiting.id)

    async def test_history_lists_wallet_orders(self, manager):
        first = await onchain_order(manager)
        second = await onchain_order(manager, amount="1")
        history = await manager.history(PAYER)
        assert {order.id for order in history} == {first.id, second.id}
