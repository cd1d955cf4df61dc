"""Domain models for wallet sessions and transfer outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class WalletSession:
    """What the core may know about a connected wallet: no keys, no secrets."""

    connected: bool
    address: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TransferRequest:
    destination: str
    amount: int
    memo: str
    valid_until: int


@dataclass(frozen=True, slots=True)
class Sent:
    """The wallet signed and broadcast the transfer."""

    tx_hash: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Rejected:
    """The user declined to sign."""

    reason: str = "rejected by user"


@dataclass(frozen=True, slots=True)
class TimedOut:
    """No answer from the wallet before the request deadline."""

    reason: str = "wallet did not answer in time"


@dataclass(frozen=True, slots=True)
class TransportFailed:
    """The wallet bridge could not be reached."""

    reason: str = "wallet bridge unreachable"


SendResult = Union[Sent, Rejected, TimedOut, TransportFailed]
