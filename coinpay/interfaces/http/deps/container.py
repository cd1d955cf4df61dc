"""Access to the application container stored on ``app.state``."""

from starlette.requests import HTTPConnection

from coinpay.core.container import ApplicationContainer


def get_container(request: HTTPConnection) -> ApplicationContainer:
    return request.app.state.container


__all__ = ["get_container"]
