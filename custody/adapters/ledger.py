from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from custody.wallet.interfaces import Ledger, LedgerError
from custody.wallet.models import Transfer

logger = logging.getLogger(__name__)


class InMemoryLedger(Ledger):
    """
    Process-local ledger with per-asset integer balances.

    - Thread-safe (own lock)
    - `transfer` returns False on insufficient balance or when the destination
      is registered as rejecting (simulates a payee that refuses value)
    - Completed transfers and per-destination credits are kept for inspection
    """

    def __init__(
        self,
        *,
        balances: Optional[Dict[str, int]] = None,
        rejecting_destinations: Iterable[str] = (),
    ) -> None:
        self._mu = threading.Lock()
        self._balances: Dict[str, int] = {str(k): int(v) for k, v in (balances or {}).items()}
        self._credited: Dict[tuple[str, str], int] = {}
        self._transfers: List[Transfer] = []
        self._rejecting = {str(d) for d in rejecting_destinations}

    def deposit(self, asset: str, amount: int) -> int:
        amount = int(amount)
        if amount <= 0:
            raise LedgerError(f"deposit amount must be > 0 (got {amount})")
        with self._mu:
            self._balances[asset] = self._balances.get(asset, 0) + amount
            return self._balances[asset]

    def reject_destination(self, destination: str, *, rejecting: bool = True) -> None:
        with self._mu:
            if rejecting:
                self._rejecting.add(str(destination))
            else:
                self._rejecting.discard(str(destination))

    def balance_of(self, asset: str) -> int:
        with self._mu:
            return self._balances.get(asset, 0)

    def credited(self, destination: str, *, asset: str = "native") -> int:
        with self._mu:
            return self._credited.get((asset, destination), 0)

    @property
    def transfers(self) -> List[Transfer]:
        with self._mu:
            return list(self._transfers)

    def transfer(self, asset: str, destination: str, amount: int) -> bool:
        amount = int(amount)
        if amount < 0:
            raise LedgerError(f"transfer amount must be >= 0 (got {amount})")
        with self._mu:
            if destination in self._rejecting:
                logger.warning("ledger.transfer_rejected asset=%s destination=%s amount=%s", asset, destination, amount)
                return False
            available = self._balances.get(asset, 0)
            if amount > available:
                logger.warning(
                    "ledger.insufficient_balance asset=%s destination=%s amount=%s available=%s",
                    asset,
                    destination,
                    amount,
                    available,
                )
                return False
            self._balances[asset] = available - amount
            key = (asset, destination)
            self._credited[key] = self._credited.get(key, 0) + amount
            self._transfers.append(Transfer(asset=asset, destination=destination, amount=amount))
            return True
