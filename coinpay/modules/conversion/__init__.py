"""Conversion module exports"""

from .exceptions import InvalidAmount, InvalidRate
from .models import Conversion, SourceCurrency
from .service import (
    CREDIT_DECIMALS,
    CREDIT_RATE,
    FIAT_DECIMALS,
    MAX_UNITS,
    TOKEN_DECIMALS,
    convert,
    from_units,
    settlement_units,
    to_units,
)

__all__ = [
    "CREDIT_DECIMALS",
    "CREDIT_RATE",
    "FIAT_DECIMALS",
    "MAX_UNITS",
    "TOKEN_DECIMALS",
    "Conversion",
    "InvalidAmount",
    "InvalidRate",
    "SourceCurrency",
    "convert",
    "from_units",
    "settlement_units",
    "to_units",
]
