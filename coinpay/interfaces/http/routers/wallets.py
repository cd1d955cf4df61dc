"""Wallet balance, purchase history and credit ledger."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from coinpay.interfaces.http.deps import get_ledger_service, get_order_manager
from coinpay.modules.ledger import LedgerService
from coinpay.modules.orders import OrderLifecycleManager
from coinpay.schemas import BalanceResponse, HistoryItem, HistoryResponse, LedgerEntryItem, LedgerResponse

router = APIRouter()


@router.get("/balance/{wallet}", response_model=BalanceResponse, summary="Coin balance of a wallet")
async def get_balance(wallet: str, ledger: LedgerService = Depends(get_ledger_service)):
    snapshot = await ledger.balance(wallet)
    return BalanceResponse.model_validate(snapshot)


@router.get("/history/{wallet}", response_model=HistoryResponse, summary="Purchase history of a wallet")
async def get_history(
    wallet: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    orders = await manager.history(wallet, limit=limit, offset=offset)
    return HistoryResponse(wallet=wallet, transactions=[HistoryItem.from_order(order) for order in orders])


@router.get("/ledger/{wallet}", response_model=LedgerResponse, summary="Credits booked to a wallet")
async def get_ledger(
    wallet: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ledger: LedgerService = Depends(get_ledger_service),
):
    entries = await ledger.entries(wallet, limit=limit, offset=offset)
    return LedgerResponse(wallet=wallet, entries=[LedgerEntryItem.model_validate(entry) for entry in entries])
