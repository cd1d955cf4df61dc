"""Price oracle contract and the static oracle used when no feed is wired in."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Protocol

from coinpay.modules.common.exceptions import PaymentError

logger = logging.getLogger(__name__)


class PriceUnavailable(PaymentError):
    """Raised when the oracle cannot produce a rate."""

    code = "PriceUnavailable"


class PriceOracle(Protocol):
    async def get_rate(self) -> Decimal:
        """Return FIAT per PRIMARY_TOKEN."""
        ...


class StaticPriceOracle:
    """Fixed rate, settable at runtime (admin override or tests)."""

    def __init__(self, rate: Decimal | str) -> None:
        self._rate = Decimal(rate)

    @property
    def rate(self) -> Decimal:
        return self._rate

    def set_rate(self, rate: Decimal | str) -> None:
        logger.info("Static rate changed %s -> %s", self._rate, rate)
        self._rate = Decimal(rate)

    async def get_rate(self) -> Decimal:
        return self._rate


__all__ = ["PriceOracle", "PriceUnavailable", "StaticPriceOracle"]
