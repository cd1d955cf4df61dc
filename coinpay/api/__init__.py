from fastapi import APIRouter

from coinpay.interfaces.http.routers import orders, paystack, wallets


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(orders.router, prefix="/orders", tags=["orders"])
    router.include_router(paystack.router, prefix="/paystack", tags=["paystack"])
    router.include_router(wallets.router, tags=["wallets"])
    return router


__all__ = [
    "create_api_router",
]
