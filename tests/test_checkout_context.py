from decimal import Decimal

import pytest

from coinpay.modules.orders import CheckoutContext, OrderStatus
from coinpay.modules.wallets import ConnectionRejected, WalletSession

from conftest import EMAIL, PAID, PENDING, PAYER, FakeWalletConnector

pytestmark = pytest.mark.anyio


class TestCheckoutContext:
    async def test_onchain_purchase_needs_a_connected_wallet(self, manager):
        async with CheckoutContext(manager, FakeWalletConnector()) as context:
            with pytest.raises(ConnectionRejected):
                await context.buy_onchain("10", "token")

    async def test_onchain_purchase_submits_transfer(self, manager, chain_rail):
        chain_rail.answer(PENDING)
        connector = FakeWalletConnector()
        async with CheckoutContext(manager, connector) as context:
            await context.connect()
            order = await context.buy_onchain("10", "token")
            assert order.status is OrderStatus.AWAITING_SETTLEMENT
            assert order.payer_wallet == PAYER
            assert context.order_ids == (order.id,)
            assert manager.scheduler.is_active(order.id)
        await manager.scheduler.wait(order.id)
        assert not manager.scheduler.is_active(order.id)
        assert len(connector.requests) == 1

    async def test_connect_late_links_tracked_orders(self, manager, gateway, balances):
        gateway.answer(PAID)
        connector = FakeWalletConnector()
        async with CheckoutContext(manager, connector) as context:
            order = await context.buy_with_gateway("15000", "fiat", EMAIL)
            await manager.scheduler.wait(order.id)
            assert (await manager.get_order(order.id)).status is OrderStatus.SETTLED

            await context.connect()

        credited = await manager.get_order(order.id)
        assert credited.status is OrderStatus.CREDITED
        assert credited.payer_wallet == PAYER
        assert await balances.balance(PAYER) == Decimal("50")

    async def test_status_event_from_connector_links(self, manager, gateway):
        gateway.answer(PENDING)
        connector = FakeWalletConnector()
        async with CheckoutContext(manager, connector) as context:
            order = await context.buy_with_gateway("15000", "fiat", EMAIL)
            await connector.emit(WalletSession(connected=True, address=PAYER))
            assert (await manager.get_order(order.id)).payer_wallet == PAYER
        assert connector.handlers == []

    async def test_gateway_return_links_connected_wallet(self, manager, gateway):
        gateway.answer(PAID)
        connector = FakeWalletConnector()
        order = await manager.create_order(
            rail="fiat_gateway",
            source_amount="15000",
            source_currency="fiat",
            payer_email=EMAIL,
        )
        async with CheckoutContext(manager, connector) as context:
            await context.connect()
            result = await context.gateway_returned(order.external_ref)
        assert result.status is OrderStatus.CREDITED

    async def test_disconnect_forgets_session(self, manager):
        connector = FakeWalletConnector()
        async with CheckoutContext(manager, connector) as context:
            await context.connect()
            await context.disconnect()
            assert context.session == WalletSession(connected=False)
            assert connector.connected is False
