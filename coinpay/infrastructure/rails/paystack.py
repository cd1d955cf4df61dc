"""Paystack fiat gateway: checkout sessions, verification and webhooks."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any

from coinpay.core.config import PaystackSettings
from coinpay.modules.common.exceptions import TransportError
from coinpay.modules.orders.models import CheckoutSession, Order, RailCheck, RailOutcome

from .base import HttpRailClient

logger = logging.getLogger(__name__)

_FAILED_STATUSES = {"failed", "reversed"}


class PaystackRail(HttpRailClient):
    def __init__(self, settings: PaystackSettings, currency: str = "NGN") -> None:
        super().__init__(
            settings.base_url,
            headers={"Authorization": f"Bearer {settings.secret_key}"},
            timeout=settings.request_timeout,
        )
        self._secret_key = settings.secret_key
        self._callback_url = settings.callback_url
        self._currency = currency

    async def open_checkout(self, order: Order) -> CheckoutSession:
        if not order.payer_email:
            raise ValueError(f"order {order.id} has no payer email")
        payload: dict[str, Any] = {
            "email": order.payer_email,
            "amount": order.settlement_amount,
            "currency": self._currency,
            "reference": order.external_ref,
            "metadata": {"order_id": order.id},
        }
        if self._callback_url:
            payload["callback_url"] = self._callback_url
        data = self._unwrap(await self._request_json("POST", "transaction/initialize", json=payload))
        url = data.get("authorization_url")
        if not url:
            raise TransportError(f"paystack returned no authorization_url for {order.external_ref}")
        return CheckoutSession(authorization_url=url, reference=data.get("reference") or order.external_ref)

    async def verify(self, reference: str) -> dict[str, Any]:
        return self._unwrap(await self._request_json("GET", f"transaction/verify/{reference}"))

    async def check(self, order: Order) -> RailCheck:
        data = await self.verify(order.external_ref)
        status = (data.get("status") or "").lower()
        if status == "success":
            amount = data.get("amount")
            currency = (data.get("currency") or self._currency).upper()
            if amount != order.settlement_amount or currency != self._currency.upper():
                return RailCheck(
                    RailOutcome.FAILED,
                    detail=f"charged {amount} {currency}, expected {order.settlement_amount} {self._currency}",
                )
            return RailCheck(RailOutcome.PAID, detail=f"paystack {data.get('id') or order.external_ref}")
        if status in _FAILED_STATUSES:
            return RailCheck(RailOutcome.FAILED, detail=data.get("gateway_response") or status)
        return RailCheck(RailOutcome.PENDING, detail=status or None)

    def verify_signature(self, body: bytes, signature: str | None) -> bool:
        if not signature or not self._secret_key:
            return False
        expected = hmac.new(self._secret_key.encode("utf-8"), body, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)

    @staticmethod
    def _unwrap(payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict) or not payload.get("status"):
            message = payload.get("message") if isinstance(payload, dict) else payload
            raise TransportError(f"paystack call unsuccessful: {message}")
        return payload.get("data") or {}
