from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class OracleError(RuntimeError):
    """Raised by oracle implementations when no reading can be produced."""


class LedgerError(RuntimeError):
    """Raised by ledger implementations when an operation cannot be performed."""


@dataclass(frozen=True, slots=True)
class OracleReading:
    """
    Exchange rate of the held asset in the reference currency.

    `price` is fixed-point with `decimals` fractional digits, e.g. a rate of
    2000.5 with 8 decimals is price=200050000000, decimals=8.
    """

    price: int
    decimals: int

    @property
    def scale(self) -> int:
        return 10 ** self.decimals


class PriceOracle(ABC):
    """
    Read-only source of the current exchange rate.

    Contract:
    - Implementations may raise `OracleError` on staleness or transport errors.
    - A non-positive price is treated by the wallet as an invalid reading.
    """

    @abstractmethod
    def latest_rate(self) -> OracleReading:
        raise NotImplementedError


class Ledger(ABC):
    """
    Custody of balances and value transfers.

    The wallet directs the ledger; it never mutates balances itself.
    """

    @abstractmethod
    def balance_of(self, asset: str) -> int:
        """Current balance held for `asset` (integer base units)."""

        raise NotImplementedError

    @abstractmethod
    def transfer(self, asset: str, destination: str, amount: int) -> bool:
        """
        Move `amount` of `asset` to `destination`.

        Returns False (or raises `LedgerError`) when the transfer did not happen.
        """

        raise NotImplementedError
