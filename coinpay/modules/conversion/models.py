"""Domain models for amount conversion."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class SourceCurrency(str, Enum):
    """Unit the user typed the purchase amount in."""

    PRIMARY_TOKEN = "token"
    FIAT = "fiat"


@dataclass(frozen=True, slots=True)
class Conversion:
    token_amount: Decimal
    fiat_amount: Decimal
    credit_amount: Decimal
    rate: Decimal
