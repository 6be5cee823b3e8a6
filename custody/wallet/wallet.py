"""
DualControlWallet: the single entry point for the wallet command surface.

Concurrency:
- One re-entrant lock guards the proposal store, the wallet state and every
  ledger/oracle call made on the wallet's behalf. Callers observe a strictly
  serialized history; two racing `decide` calls on one id resolve to one
  winner and one AlreadyDecided.
- Notifications are emitted after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import InvalidDeposit, InvalidWalletConfig, TransferFailed
from .fund_gate import FundGate
from .interfaces import Ledger, PriceOracle
from .models import Proposal, ProposalStatus, Transfer, WalletState, utc_now
from .notifications import (
    FUNDS_RECEIVED,
    FUNDS_RELEASED,
    PROPOSAL_CREATED,
    PROPOSAL_EXECUTED,
    PROPOSAL_STATUS_CHANGED,
    EventBus,
)
from .policy import AuthorizationPolicy, DirectorRegistry, normalize_principal
from .proposals import ProposalStore, TargetsArg
from .state import apply_proposal, initial_state

logger = logging.getLogger(__name__)


class DualControlWallet:
    def __init__(
        self,
        *,
        directors: Sequence[object],
        display_name: str,
        payout_targets: Sequence[str],
        threshold_value: int = 0,
        ledger: Ledger,
        oracle: PriceOracle,
        asset: str = "native",
        events: Optional[EventBus] = None,
        now_fn: Callable[[], datetime] = utc_now,
    ) -> None:
        errors: List[str] = []
        try:
            registry = DirectorRegistry(directors)
        except InvalidWalletConfig as e:
            errors.extend(e.errors)
        try:
            state = initial_state(
                display_name=display_name,
                payout_targets=payout_targets,
                threshold_value=threshold_value,
            )
        except InvalidWalletConfig as e:
            errors.extend(e.errors)
        if errors:
            raise InvalidWalletConfig(errors)

        self._state: WalletState = state
        self._policy = AuthorizationPolicy(registry)
        self._store = ProposalStore(policy=self._policy, now_fn=now_fn)
        self._ledger = ledger
        self._gate = FundGate(ledger=ledger, oracle=oracle, asset=asset)
        self._events = events or EventBus()
        self._events.wallet_name = self._state.display_name
        self._mu = threading.RLock()

        logger.info(
            "wallet.initialized name=%s directors=%s targets=%s threshold=%s asset=%s",
            self._state.display_name,
            list(registry.directors),
            list(self._state.payout_targets),
            self._state.threshold_value,
            asset,
        )

    # --- read accessors ---

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def policy(self) -> AuthorizationPolicy:
        return self._policy

    @property
    def directors(self) -> Tuple[str, ...]:
        return self._policy.registry.directors

    @property
    def asset(self) -> str:
        return self._gate.asset

    @property
    def state(self) -> WalletState:
        with self._mu:
            return self._state

    @property
    def display_name(self) -> str:
        return self.state.display_name

    @property
    def payout_targets(self) -> Tuple[str, ...]:
        return self.state.payout_targets

    @property
    def threshold_value(self) -> int:
        return self.state.threshold_value

    @property
    def next_proposal_id(self) -> int:
        with self._mu:
            return self._store.next_proposal_id

    def get_proposal(self, proposal_id: int) -> Proposal:
        with self._mu:
            return self._store.get(proposal_id)

    def proposals(self, *, status: Optional[ProposalStatus] = None) -> List[Proposal]:
        with self._mu:
            return self._store.list(status=status)

    def balance(self) -> int:
        with self._mu:
            return self._gate.balance()

    # --- commands ---

    def propose(
        self,
        caller: object,
        *,
        name: Optional[str] = None,
        targets: TargetsArg = None,
        threshold: Optional[int] = None,
    ) -> int:
        with self._mu:
            proposal = self._store.create(
                caller,
                proposed_name=name,
                proposed_targets=targets,
                proposed_threshold=threshold,
            )
        self._events.emit(PROPOSAL_CREATED, proposal_id=proposal.proposal_id, creator=proposal.creator)
        return proposal.proposal_id

    def decide(self, caller: object, proposal_id: int, *, accept: bool) -> Proposal:
        with self._mu:
            decided = self._store.build_decision(caller, proposal_id, accept=accept)
            new_state = apply_proposal(self._state, decided) if accept else self._state
            self._store.commit(decided)
            self._state = new_state
            self._events.wallet_name = new_state.display_name

        if decided.status == ProposalStatus.ACCEPTED:
            self._events.emit(PROPOSAL_EXECUTED, proposal_id=decided.proposal_id, decider=decided.decider)
        self._events.emit(
            PROPOSAL_STATUS_CHANGED,
            proposal_id=decided.proposal_id,
            decider=decided.decider,
            status=decided.status.value,
        )
        return decided

    def balance_meets_threshold(self) -> bool:
        with self._mu:
            return self._gate.balance_meets_threshold(self._state)

    def release_funds(self, caller: object | None = None) -> List[Transfer]:
        """
        Open to any caller. Does not consult `balance_meets_threshold`.
        """
        who = normalize_principal(caller)
        try:
            with self._mu:
                transfers = self._gate.release(self._state)
        except TransferFailed as e:
            logger.error(
                "wallet.release_partial caller=%s completed=%s error=%s",
                who,
                len(e.completed),
                e.message,
            )
            self._emit_released(e.completed, caller=who)
            raise
        self._emit_released(transfers, caller=who)
        return transfers

    def receive_funds(self, sender: object, amount: int) -> int:
        """
        Record an inbound transfer and announce it. Returns the new balance.

        Ledgers that expose `deposit(asset, amount)` are credited here; other
        ledgers are expected to have booked the value already.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidDeposit(f"deposit amount must be a positive integer (got {amount!r})")
        who = normalize_principal(sender) or "unknown"
        with self._mu:
            deposit = getattr(self._ledger, "deposit", None)
            if callable(deposit):
                deposit(self._gate.asset, amount)
            balance = self._gate.balance()
        self._events.emit(FUNDS_RECEIVED, sender=who, amount=amount, asset=self._gate.asset)
        return balance

    def _emit_released(self, transfers: Sequence[Transfer], *, caller: Optional[str]) -> None:
        for t in transfers:
            self._events.emit(
                FUNDS_RELEASED,
                destination=t.destination,
                amount=t.amount,
                asset=t.asset,
                caller=caller,
            )
