"""
Proposal store + lifecycle state machine.

States:
  PENDING -> ACCEPTED | REJECTED (terminal)

Rules:
- ids are 0-based and strictly increasing; `next_proposal_id` is the id the
  next proposal will receive
- records are never deleted (audit trail)
- every refusal leaves the store unchanged

`decide` is split into a pure `build_decision` step and a `commit` step so the
wallet can compute the resulting WalletState before anything is written.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .errors import InvalidProposal, ProposalNotFound
from .models import Proposal, ProposalStatus, utc_now
from .policy import AuthorizationPolicy

logger = logging.getLogger(__name__)

MAX_PROPOSED_TARGETS = 2

TargetsArg = Union[None, str, Sequence[Optional[str]]]


def _normalize_name(name: object | None) -> Optional[str]:
    if name is None:
        return None
    s = str(name).strip()
    return s or None


def _normalize_targets(targets: TargetsArg) -> Tuple[Optional[str], Optional[str]]:
    if targets is None:
        return (None, None)
    if isinstance(targets, str):
        targets = [targets]
    slots = list(targets)
    if len(slots) > MAX_PROPOSED_TARGETS:
        raise InvalidProposal(
            f"at most {MAX_PROPOSED_TARGETS} payout targets can be proposed (got {len(slots)})"
        )
    out: List[Optional[str]] = []
    for t in slots:
        s = str(t).strip() if t is not None else ""
        out.append(s or None)
    while len(out) < MAX_PROPOSED_TARGETS:
        out.append(None)
    return (out[0], out[1])


def _normalize_threshold(threshold: object | None) -> Optional[int]:
    if threshold is None:
        return None
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise InvalidProposal(f"threshold must be an integer (got {threshold!r})")
    if threshold < 0:
        raise InvalidProposal("threshold must be >= 0")
    # 0 means "leave the threshold unchanged".
    return threshold or None


class ProposalStore:
    """
    In-memory authoritative mapping of proposal ids to records.

    Not thread-safe on its own; the owning wallet serializes access.
    """

    def __init__(
        self,
        *,
        policy: AuthorizationPolicy,
        now_fn: Callable[[], datetime] = utc_now,
    ) -> None:
        self._policy = policy
        self._now = now_fn
        self._records: Dict[int, Proposal] = {}
        self._next_id = 0

    @property
    def next_proposal_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._records)

    def get(self, proposal_id: int) -> Proposal:
        try:
            return self._records[int(proposal_id)]
        except (KeyError, TypeError, ValueError):
            raise ProposalNotFound(f"proposal {proposal_id!r} not found", proposal_id=proposal_id) from None

    def list(self, *, status: Optional[ProposalStatus] = None) -> List[Proposal]:
        records = [self._records[k] for k in sorted(self._records)]
        if status is not None:
            records = [p for p in records if p.status == status]
        return records

    def create(
        self,
        caller: object,
        *,
        proposed_name: object | None = None,
        proposed_targets: TargetsArg = None,
        proposed_threshold: object | None = None,
    ) -> Proposal:
        creator = self._policy.check_propose(caller)

        name = _normalize_name(proposed_name)
        targets = _normalize_targets(proposed_targets)
        threshold = _normalize_threshold(proposed_threshold)
        if name is None and targets == (None, None) and threshold is None:
            raise InvalidProposal("proposal must change at least one of name, targets, threshold")

        proposal = Proposal(
            proposal_id=self._next_id,
            creator=creator,
            proposed_name=name,
            proposed_targets=targets,
            proposed_threshold=threshold,
            created_at_utc=self._now(),
        )
        self._records[proposal.proposal_id] = proposal
        self._next_id += 1
        logger.debug("proposal stored id=%s creator=%s", proposal.proposal_id, creator)
        return proposal

    def build_decision(self, caller: object, proposal_id: int, *, accept: bool) -> Proposal:
        """
        Pure transition: validate and return the decided record without storing it.

        Check order: NotFound, Unauthorized, SelfApprovalForbidden, AlreadyDecided.
        """
        if not isinstance(accept, bool):
            raise InvalidProposal(f"accept must be a bool (got {accept!r})")
        current = self.get(proposal_id)
        decider = self._policy.check_decide(caller, current)
        return current.model_copy(
            update={
                "decider": decider,
                "status": ProposalStatus.ACCEPTED if accept else ProposalStatus.REJECTED,
                "decided_at_utc": self._now(),
            }
        )

    def commit(self, decided: Proposal) -> Proposal:
        current = self.get(decided.proposal_id)
        if not current.is_pending:
            # Guard against committing a stale decision built outside the lock.
            self._policy.check_decide(decided.decider, current)
        self._records[decided.proposal_id] = decided
        return decided

    def decide(self, caller: object, proposal_id: int, *, accept: bool) -> Proposal:
        return self.commit(self.build_decision(caller, proposal_id, accept=accept))
