"""
WalletState construction + the patch rule applied by accepted proposals.

Pure functions only: callers hold the wallet lock and commit the returned
value by assignment, so a failure here leaves the current state untouched.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .errors import InvalidWalletConfig
from .models import Proposal, WalletState


def initial_state(
    *,
    display_name: object,
    payout_targets: Iterable[object],
    threshold_value: object = 0,
) -> WalletState:
    """
    Validate the initial wallet parameters.

    Raises InvalidWalletConfig listing every violated invariant.
    """
    errors: list[str] = []

    name = str(display_name or "").strip()
    if not name:
        errors.append("display_name is required")

    targets = [str(t).strip() if t is not None else "" for t in payout_targets]
    if len(targets) not in (1, 2):
        errors.append(f"payout_targets must hold 1 or 2 destinations (got {len(targets)})")
    if any(not t for t in targets):
        errors.append("payout_targets must be non-empty identifiers")

    threshold: int = 0
    try:
        threshold = int(threshold_value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        errors.append(f"threshold_value must be an integer (got {threshold_value!r})")
    else:
        if threshold < 0:
            errors.append("threshold_value must be >= 0")

    if errors:
        raise InvalidWalletConfig(errors)

    return WalletState(display_name=name, payout_targets=tuple(targets), threshold_value=threshold)


def _patched_targets(current: tuple[str, ...], proposed: tuple[Optional[str], Optional[str]]) -> tuple[str, ...]:
    targets: List[str] = list(current)
    first, second = proposed
    if first is not None:
        targets[0] = first
    if second is not None:
        if len(targets) >= 2:
            targets[1] = second
        else:
            targets.append(second)
    return tuple(targets)


def apply_proposal(state: WalletState, proposal: Proposal) -> WalletState:
    """
    Partial update: every attribute the proposal sets overwrites the state,
    every unset attribute is kept.
    """
    update: dict[str, object] = {}
    if proposal.proposed_name is not None:
        update["display_name"] = proposal.proposed_name
    if any(t is not None for t in proposal.proposed_targets):
        update["payout_targets"] = _patched_targets(state.payout_targets, proposal.proposed_targets)
    if proposal.proposed_threshold is not None:
        update["threshold_value"] = proposal.proposed_threshold
    if not update:
        return state
    # model_copy skips validation; rebuild so the WalletState invariants hold.
    return WalletState(**{**state.model_dump(), **update})
