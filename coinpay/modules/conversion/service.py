"""Pure conversion between the purchase amount and every tracked denomination.

The rate is always passed in; nothing here performs I/O, so a failed or stale
rate fetch can never reach an order that already has its amounts frozen.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from .exceptions import InvalidAmount, InvalidRate
from .models import Conversion, SourceCurrency

# Coins granted per token. Policy constant, not a setting.
CREDIT_RATE = Decimal("5")

TOKEN_DECIMALS = 9
FIAT_DECIMALS = 2
CREDIT_DECIMALS = 9

_TOKEN_QUANTUM = Decimal(1).scaleb(-TOKEN_DECIMALS)
_FIAT_QUANTUM = Decimal(1).scaleb(-FIAT_DECIMALS)

# Unit columns are signed 64-bit integers.
MAX_UNITS = 2**63 - 1

# Settlement units per rail: which amount the rail charges and at what precision.
_RAIL_UNITS = {
    "on_chain": ("token_amount", TOKEN_DECIMALS),
    "fiat_gateway": ("fiat_amount", FIAT_DECIMALS),
}


def _to_decimal(value: Decimal | int | float | str, error: type[Exception]) -> Decimal:
    if isinstance(value, bool):
        raise error(f"not a number: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise error(f"not a number: {value!r}") from exc
    if not number.is_finite():
        raise error(f"not a finite number: {value!r}")
    if number <= 0:
        raise error(f"must be positive: {value!r}")
    return number


def convert(
    amount: Decimal | int | float | str,
    source_currency: SourceCurrency | str,
    rate: Decimal | int | float | str,
) -> Conversion:
    """Map ``amount`` in ``source_currency`` to token, fiat and credit amounts.

    ``rate`` is FIAT per PRIMARY_TOKEN. The token amount is rounded down to
    nanotoken precision so a fiat purchase never credits more than was paid
    for; the fiat amount is rounded half-up to minor units. The credit amount
    is exactly ``token_amount * CREDIT_RATE``.
    """
    value = _to_decimal(amount, InvalidAmount)
    price = _to_decimal(rate, InvalidRate)
    try:
        currency = SourceCurrency(source_currency)
    except ValueError as exc:
        raise InvalidAmount(f"unsupported currency: {source_currency!r}") from exc

    try:
        with localcontext() as ctx:
            ctx.prec = 60
            if currency is SourceCurrency.PRIMARY_TOKEN:
                token_amount = value.quantize(_TOKEN_QUANTUM, rounding=ROUND_DOWN)
                fiat_amount = (value * price).quantize(_FIAT_QUANTUM, rounding=ROUND_HALF_UP)
            else:
                fiat_amount = value.quantize(_FIAT_QUANTUM, rounding=ROUND_HALF_UP)
                token_amount = (fiat_amount / price).quantize(_TOKEN_QUANTUM, rounding=ROUND_DOWN)
            credit_amount = token_amount * CREDIT_RATE
    except InvalidOperation as exc:
        raise InvalidAmount(f"amount out of range: {amount!r}") from exc

    if token_amount <= 0 or fiat_amount <= 0:
        raise InvalidAmount(f"amount too small to settle: {amount!r}")
    for name, figure, decimals in (
        ("token", token_amount, TOKEN_DECIMALS),
        ("fiat", fiat_amount, FIAT_DECIMALS),
        ("credit", credit_amount, CREDIT_DECIMALS),
    ):
        if figure.scaleb(decimals) > MAX_UNITS:
            raise InvalidAmount(f"{name} amount too large: {figure}")

    return Conversion(
        token_amount=token_amount,
        fiat_amount=fiat_amount,
        credit_amount=credit_amount,
        rate=price,
    )


def settlement_units(conversion: Conversion, rail: str) -> int:
    """Rail-native integer the payer is charged: nanotoken on chain, kobo at the gateway."""
    try:
        field, decimals = _RAIL_UNITS[getattr(rail, "value", rail)]
    except KeyError as exc:
        raise InvalidAmount(f"unsupported rail: {rail!r}") from exc
    return to_units(getattr(conversion, field), decimals)


def to_units(value: Decimal, decimals: int) -> int:
    """Express ``value`` as an integer count of ``10**-decimals`` units."""
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(f"{value} has more than {decimals} decimals")
    return int(scaled)


def from_units(units: int, decimals: int) -> Decimal:
    return Decimal(units).scaleb(-decimals)
