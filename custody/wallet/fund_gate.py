"""
Price-gated release check + payout split.

held_value = balance * price // 10**decimals  (floor; integer fixed-point)

`balance_meets_threshold` is a read-only query. It is NOT consulted by
`release_funds`: release is open to any caller once the balance is positive.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from .errors import InvalidOracleReading, NothingToTransfer, ThresholdNotConfigured, TransferFailed
from .interfaces import Ledger, LedgerError, OracleReading, PriceOracle
from .models import Transfer, WalletState

logger = logging.getLogger(__name__)


def held_value(balance: int, reading: OracleReading) -> int:
    """Value of `balance` in the reference currency, rounded down."""
    return (int(balance) * int(reading.price)) // reading.scale


def split_payouts(balance: int, targets: Sequence[str]) -> List[tuple[str, int]]:
    """
    One target receives everything; two targets receive balance // 2 each.

    The odd remainder of a two-way split stays in the ledger.
    """
    if len(targets) == 1:
        return [(targets[0], int(balance))]
    share = int(balance) // 2
    return [(t, share) for t in targets]


class FundGate:
    def __init__(self, *, ledger: Ledger, oracle: PriceOracle, asset: str = "native") -> None:
        self._ledger = ledger
        self._oracle = oracle
        self._asset = str(asset)

    @property
    def asset(self) -> str:
        return self._asset

    def balance(self) -> int:
        return int(self._ledger.balance_of(self._asset))

    def read_oracle(self) -> OracleReading:
        try:
            reading = self._oracle.latest_rate()
        except Exception as e:
            raise InvalidOracleReading(f"price oracle unavailable: {e}") from e
        if int(reading.price) <= 0:
            raise InvalidOracleReading(f"price must be > 0 (got {reading.price})", price=reading.price)
        if int(reading.decimals) < 0:
            raise InvalidOracleReading(f"decimals must be >= 0 (got {reading.decimals})", decimals=reading.decimals)
        return reading

    def balance_meets_threshold(self, state: WalletState) -> bool:
        if state.threshold_value <= 0:
            raise ThresholdNotConfigured("threshold value is not configured")
        reading = self.read_oracle()
        value = held_value(self.balance(), reading)
        logger.debug(
            "fund_gate.check asset=%s held_value=%s threshold=%s price=%s decimals=%s",
            self._asset,
            value,
            state.threshold_value,
            reading.price,
            reading.decimals,
        )
        return value >= state.threshold_value

    def release(self, state: WalletState) -> List[Transfer]:
        """
        Transfer the balance to the payout targets, in order.

        The first failed transfer aborts the release; earlier transfers stay done.
        """
        balance = self.balance()
        if balance <= 0:
            raise NothingToTransfer("no funds to transfer", asset=self._asset)

        completed: List[Transfer] = []
        for destination, amount in split_payouts(balance, state.payout_targets):
            try:
                ok = bool(self._ledger.transfer(self._asset, destination, amount))
            except LedgerError as e:
                raise TransferFailed(
                    f"transfer of {amount} to {destination} failed: {e}",
                    completed=completed,
                    destination=destination,
                    amount=amount,
                ) from e
            if not ok:
                raise TransferFailed(
                    f"transfer of {amount} to {destination} failed",
                    completed=completed,
                    destination=destination,
                    amount=amount,
                )
            completed.append(Transfer(asset=self._asset, destination=destination, amount=amount))
        return completed
