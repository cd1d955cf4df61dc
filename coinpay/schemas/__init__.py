"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from coinpay.modules.conversion import SourceCurrency
from coinpay.modules.orders import Order, Rail
from coinpay.modules.wallets import Rejected, SendResult, Sent, TimedOut, TransportFailed


class OrderCreate(BaseModel):
    rail: Rail
    amount: Decimal = Field(..., gt=0)
    currency: SourceCurrency
    wallet: Optional[str] = Field(default=None, max_length=128)
    email: Optional[str] = Field(default=None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class TransferInstruction(BaseModel):
    destination: str
    amount: int
    memo: str
    valid_until: int


class OrderResponse(BaseModel):
    id: str
    rail: Rail
    status: str
    confirmation: str
    payer_wallet: Optional[str] = None
    source_amount: Decimal
    source_currency: str
    rate: Decimal
    token_amount: Decimal
    fiat_amount: Decimal
    credit_amount: Decimal
    settlement_amount: int
    external_ref: str
    settlement_target: Optional[str] = None
    transfer: Optional[TransferInstruction] = None
    failure_reason: Optional[str] = None
    detail: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    settled_at: Optional[datetime] = None
    credited_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        transfer = None
        if order.rail is Rail.ON_CHAIN and order.settlement_target:
            transfer = TransferInstruction(
                destination=order.settlement_target,
                amount=order.settlement_amount,
                memo=order.external_ref,
                valid_until=int(order.expires_at.timestamp()),
            )
        return cls(
            id=order.id,
            rail=order.rail,
            status=order.status.value,
            confirmation=order.status.confirmation,
            payer_wallet=order.payer_wallet,
            source_amount=order.source_amount,
            source_currency=order.source_currency,
            rate=order.rate,
            token_amount=order.token_amount,
            fiat_amount=order.fiat_amount,
            credit_amount=order.credit_amount,
            settlement_amount=order.settlement_amount,
            external_ref=order.external_ref,
            settlement_target=order.settlement_target,
            transfer=transfer,
            failure_reason=order.failure_reason,
            detail=order.detail,
            created_at=order.created_at,
            expires_at=order.expires_at,
            settled_at=order.settled_at,
            credited_at=order.credited_at,
        )


class WalletResult(BaseModel):
    """Outcome of the sign-and-send request as reported by the browser."""

    outcome: Literal["sent", "rejected", "timed_out", "transport_failed"]
    tx_hash: Optional[str] = None
    reason: Optional[str] = Field(default=None, max_length=500)

    def to_result(self) -> SendResult:
        if self.outcome == "sent":
            return Sent(tx_hash=self.tx_hash)
        if self.outcome == "rejected":
            return Rejected(self.reason) if self.reason else Rejected()
        if self.outcome == "timed_out":
            return TimedOut(self.reason) if self.reason else TimedOut()
        return TransportFailed(self.reason) if self.reason else TransportFailed()


class CheckoutResponse(BaseModel):
    order_id: str
    authorization_url: str
    reference: str
    status: str


class ConfirmationResponse(BaseModel):
    order_id: str
    status: Literal["pending", "paid", "failed"]
    order_status: str


class LinkWalletRequest(BaseModel):
    wallet: str = Field(..., min_length=1, max_length=128)


class LinkWalletResponse(BaseModel):
    order_id: str
    status: Literal["linked", "rejected"]
    order_status: str
    detail: Optional[str] = None


class PaystackVerifyRequest(BaseModel):
    reference: str = Field(..., min_length=1)


class GatewayResultResponse(BaseModel):
    order_id: str
    reference: str
    status: Literal["pending", "paid", "failed"]
    order_status: str


class BalanceResponse(BaseModel):
    wallet: str
    credit_balance: Decimal
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class HistoryItem(BaseModel):
    order_id: str
    method: str
    fiat_amount: Decimal
    token_amount: Decimal
    coin_amount: Decimal
    status: str
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "HistoryItem":
        return cls(
            order_id=order.id,
            method=order.rail.value,
            fiat_amount=order.fiat_amount,
            token_amount=order.token_amount,
            coin_amount=order.credit_amount,
            status=order.status.value,
            created_at=order.created_at,
        )


class HistoryResponse(BaseModel):
    wallet: str
    transactions: list[HistoryItem]


class LedgerEntryItem(BaseModel):
    id: int
    order_id: str
    amount: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerResponse(BaseModel):
    wallet: str
    entries: list[LedgerEntryItem]


class WSMessage(BaseModel):
    type: str
    data: Optional[dict] = None
