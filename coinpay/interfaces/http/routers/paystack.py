"""Paystack redirect, webhook and manual verification endpoints."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from coinpay.interfaces.http.deps import get_order_manager
from coinpay.interfaces.http.errors import to_http_error
from coinpay.modules.common.exceptions import PaymentError
from coinpay.modules.orders import OrderLifecycleManager, OrderNotFound
from coinpay.schemas import GatewayResultResponse, PaystackVerifyRequest

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_HEADER = "x-paystack-signature"


async def _resolve(manager: OrderLifecycleManager, reference: str) -> GatewayResultResponse:
    try:
        order = await manager.handle_gateway_reference(reference)
    except PaymentError as exc:
        raise to_http_error(exc) from exc
    return GatewayResultResponse(
        order_id=order.id,
        reference=reference,
        status=order.status.confirmation,
        order_status=order.status.value,
    )


@router.get("/callback", response_model=GatewayResultResponse, summary="Checkout redirect target")
async def paystack_callback(
    reference: str = Query(..., min_length=1),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return await _resolve(manager, reference)


@router.post("/verify", response_model=GatewayResultResponse, summary="Verify a checkout reference")
async def paystack_verify(payload: PaystackVerifyRequest, manager: OrderLifecycleManager = Depends(get_order_manager)):
    return await _resolve(manager, payload.reference)


@router.post("/webhook", summary="Paystack event webhook")
async def paystack_webhook(request: Request, manager: OrderLifecycleManager = Depends(get_order_manager)):
    body = await request.body()
    if not manager.verify_gateway_signature(body, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("Rejected Paystack webhook with a bad signature")
        raise HTTPException(status_code=401, detail="invalid signature")

    try:
        event = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="invalid payload") from exc

    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="invalid payload")
    reference = str((event.get("data") or {}).get("reference") or "").strip()
    if not reference:
        logger.info("Ignoring Paystack event without reference: %s", event.get("event"))
        return {"received": True}

    # verification is always done against the API, never against the event body
    try:
        order = await manager.handle_gateway_reference(reference)
    except OrderNotFound:
        logger.warning("Paystack event for unknown reference %s", reference)
        return {"received": True}
    except PaymentError as exc:
        logger.error("Paystack event for %s not applied yet: %s", reference, exc)
        return {"received": True}
    return {"received": True, "order_id": order.id, "status": order.status.value}
