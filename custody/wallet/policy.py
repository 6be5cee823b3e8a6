"""
Director registry + authorization rules.

All "who may do what" checks live here so `propose`, `decide` and any future
entry point share one implementation. The registry is a set-membership check
against the configured pair; the state machine never compares against
individual director fields.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .errors import AlreadyDecided, InvalidWalletConfig, SelfApprovalForbidden, Unauthorized
from .models import Proposal

REQUIRED_DIRECTORS = 2


def normalize_principal(value: object | None) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class DirectorRegistry:
    """
    The fixed pair of principals allowed to propose and decide.
    """

    __slots__ = ("_ordered", "_members")

    def __init__(self, directors: Iterable[object]) -> None:
        if isinstance(directors, str):
            raise InvalidWalletConfig(["directors must be a list of identities, not a single string"])
        raw = list(directors)
        errors: list[str] = []
        if len(raw) != REQUIRED_DIRECTORS:
            errors.append(f"exactly {REQUIRED_DIRECTORS} directors are required (got {len(raw)})")
        normalized = [normalize_principal(d) for d in raw]
        if any(d is None for d in normalized):
            errors.append("director identities must be non-empty")
        present = [d for d in normalized if d is not None]
        if len(set(present)) != len(present):
            errors.append("directors must be distinct")
        if errors:
            raise InvalidWalletConfig(errors)

        self._ordered: Tuple[str, ...] = tuple(present)
        self._members = frozenset(present)

    @property
    def directors(self) -> Tuple[str, ...]:
        return self._ordered

    def __contains__(self, principal: object) -> bool:
        p = normalize_principal(principal)
        return p is not None and p in self._members

    def __repr__(self) -> str:
        return f"DirectorRegistry({list(self._ordered)!r})"


class AuthorizationPolicy:
    """
    Stateless rule evaluator over a DirectorRegistry.

    `can_*` are pure predicates; `check_*` raise the specific refusal.
    """

    def __init__(self, registry: DirectorRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> DirectorRegistry:
        return self._registry

    def can_propose(self, principal: object) -> bool:
        return principal in self._registry

    def can_decide(self, principal: object, proposal: Proposal) -> bool:
        return (
            principal in self._registry
            and normalize_principal(principal) != proposal.creator
            and proposal.is_pending
        )

    def check_propose(self, principal: object) -> str:
        if not self.can_propose(principal):
            raise Unauthorized("Not authorized: caller is not a director", caller=normalize_principal(principal))
        return normalize_principal(principal)  # type: ignore[return-value]

    def check_decide(self, principal: object, proposal: Proposal) -> str:
        # Order matters: identity first, then dual control, then lifecycle.
        p = normalize_principal(principal)
        if principal not in self._registry:
            raise Unauthorized("Not authorized: caller is not a director", caller=p)
        if p == proposal.creator:
            raise SelfApprovalForbidden(
                "proposal creator can not execute the action",
                proposal_id=proposal.proposal_id,
                caller=p,
            )
        if not proposal.is_pending:
            raise AlreadyDecided(
                f"proposal {proposal.proposal_id} already {proposal.status.value}",
                proposal_id=proposal.proposal_id,
                status=proposal.status.value,
            )
        return p  # type: ignore[return-value]
