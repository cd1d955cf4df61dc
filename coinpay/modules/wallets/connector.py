"""Contract of the wallet connector the order manager consumes."""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Protocol, Union

from .models import SendResult, WalletSession

StatusHandler = Callable[[WalletSession], Union[None, Awaitable[None]]]


class WalletConnector(Protocol):
    """Connect/disconnect events plus a sign-and-send capability.

    Implemented by whatever bridges to the user's wallet; the core never
    re-implements it.
    """

    def on_status_change(self, handler: StatusHandler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that unregisters it."""
        ...

    async def connect(self) -> WalletSession:
        """Return the connected session or raise ``ConnectionRejected``."""
        ...

    async def disconnect(self) -> None:
        ...

    async def sign_and_send(
        self,
        destination: str,
        amount: int,
        memo: str,
        valid_until: int,
    ) -> SendResult:
        ...


async def dispatch_status(handler: StatusHandler, session: WalletSession) -> None:
    """Deliver ``session`` to a handler that may be sync or async."""
    result = handler(session)
    if inspect.isawaitable(result):
        await result
