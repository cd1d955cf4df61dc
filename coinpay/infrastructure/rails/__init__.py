"""HTTP clients for the settlement rails."""

from .paystack import PaystackRail
from .ton import TonCenterRail

__all__ = ["PaystackRail", "TonCenterRail"]
