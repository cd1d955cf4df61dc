"""Translation of payment errors into HTTP responses."""

from fastapi import HTTPException

from coinpay.modules.common.exceptions import OrderError, PaymentError, TransportError
from coinpay.modules.conversion import InvalidAmount, InvalidRate
from coinpay.modules.orders import InvalidOrderRequest, OrderNotFound
from coinpay.modules.pricing import PriceUnavailable
from coinpay.modules.wallets import ConnectionRejected


def to_http_error(exc: PaymentError) -> HTTPException:
    if isinstance(exc, OrderNotFound):
        status_code = 404
    elif isinstance(exc, (InvalidAmount, InvalidRate, InvalidOrderRequest)):
        status_code = 422
    elif isinstance(exc, (PriceUnavailable, TransportError)):
        status_code = 502
    elif isinstance(exc, (OrderError, ConnectionRejected)):
        status_code = 409
    else:
        status_code = 400

    detail: dict = {"code": exc.code, "message": getattr(exc, "message", None) or str(exc)}
    if isinstance(exc, OrderError):
        detail["order_id"] = exc.order_id
        detail["status"] = exc.status
    return HTTPException(status_code=status_code, detail=detail)


__all__ = ["to_http_error"]
