"""Order endpoints: creation, wallet outcome, checkout, confirmation and late-link."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from coinpay.interfaces.http.deps import get_order_manager
from coinpay.interfaces.http.errors import to_http_error
from coinpay.modules.common.exceptions import PaymentError
from coinpay.modules.orders import InvalidOrderState, OrderLifecycleManager
from coinpay.schemas import (
    CheckoutResponse,
    ConfirmationResponse,
    LinkWalletRequest,
    LinkWalletResponse,
    OrderCreate,
    OrderResponse,
    WalletResult,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED, summary="Create an order")
async def create_order(payload: OrderCreate, manager: OrderLifecycleManager = Depends(get_order_manager)):
    try:
        order = await manager.create_order(
            rail=payload.rail,
            source_amount=payload.amount,
            source_currency=payload.currency,
            payer_wallet=payload.wallet,
            payer_email=payload.email,
        )
    except PaymentError as exc:
        raise to_http_error(exc) from exc
    return OrderResponse.from_order(order)


@router.get("/{order_id}", response_model=OrderResponse, summary="Get an order")
async def get_order(order_id: str, manager: OrderLifecycleManager = Depends(get_order_manager)):
    try:
        order = await manager.get_order(order_id)
    except PaymentError as exc:
        raise to_http_error(exc) from exc
    return OrderResponse.from_order(order)


@router.post("/{order_id}/wallet-result", response_model=OrderResponse, summary="Report the wallet outcome")
async def record_wallet_result(
    order_id: str,
    payload: WalletResult,
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    try:
        order = await manager.record_wallet_result(order_id, payload.to_result())
    except PaymentError as exc:
        raise to_http_error(exc) from exc
    return OrderResponse.from_order(order)


@router.post("/{order_id}/checkout", response_model=CheckoutResponse, summary="Open the gateway checkout")
async def open_checkout(order_id: str, manager: OrderLifecycleManager = Depends(get_order_manager)):
    try:
        order = await manager.open_checkout(order_id)
    except PaymentError as exc:
        raise to_http_error(exc) from exc
    return CheckoutResponse(
        order_id=order.id,
        authorization_url=order.settlement_target or "",
        reference=order.external_ref,
        status=order.status.value,
    )


@router.get("/{order_id}/confirmation", response_model=ConfirmationResponse, summary="Confirmation status")
async def get_confirmation(order_id: str, manager: OrderLifecycleManager = Depends(get_order_manager)):
    try:
        order = await manager.get_order(order_id)
    except PaymentError as exc:
        raise to_http_error(exc) from exc
    return ConfirmationResponse(
        order_id=order.id,
        status=order.status.confirmation,
        order_status=order.status.value,
    )


@router.post("/{order_id}/wallet", response_model=LinkWalletResponse, summary="Link a wallet to an order")
async def link_wallet(
    order_id: str,
    payload: LinkWalletRequest,
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    try:
        order = await manager.link_wallet(order_id, payload.wallet)
    except InvalidOrderState as exc:
        logger.info("Wallet link rejected for order %s: %s", order_id, exc.message)
        return LinkWalletResponse(
            order_id=order_id,
            status="rejected",
            order_status=exc.status or "",
            detail=exc.message,
        )
    except PaymentError as exc:
        raise to_http_error(exc) from exc
    return LinkWalletResponse(order_id=order.id, status="linked", order_status=order.status.value)
