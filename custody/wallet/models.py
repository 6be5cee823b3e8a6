from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProposalStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class WalletState(BaseModel):
    """
    Configuration currently in force.

    Immutable: an accepted proposal produces a new WalletState which replaces
    the previous one under the wallet lock.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    display_name: str = Field(..., description="Human-readable wallet name")
    payout_targets: Tuple[str, ...] = Field(
        ..., min_length=1, max_length=2, description="Ordered payout destinations (1 or 2)"
    )
    threshold_value: int = Field(
        default=0, ge=0, description="Reference-currency threshold (fixed-point, oracle-scaled)"
    )


class Proposal(BaseModel):
    """
    Auditable change request against the WalletState.

    Unset attributes are None. `proposed_targets` has two positional slots; a
    None slot leaves the corresponding payout target unchanged.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    proposal_id: int = Field(..., ge=0)
    creator: str = Field(..., min_length=1)
    decider: Optional[str] = None
    status: ProposalStatus = Field(default=ProposalStatus.PENDING)

    proposed_name: Optional[str] = None
    proposed_targets: Tuple[Optional[str], Optional[str]] = (None, None)
    proposed_threshold: Optional[int] = Field(default=None, gt=0)

    created_at_utc: datetime = Field(default_factory=utc_now)
    decided_at_utc: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ProposalStatus.PENDING

    def changes(self) -> Dict[str, Any]:
        """Only the attributes this proposal actually sets."""
        out: Dict[str, Any] = {}
        if self.proposed_name is not None:
            out["display_name"] = self.proposed_name
        if any(t is not None for t in self.proposed_targets):
            out["payout_targets"] = list(self.proposed_targets)
        if self.proposed_threshold is not None:
            out["threshold_value"] = self.proposed_threshold
        return out


@dataclass(frozen=True, slots=True)
class Transfer:
    """A completed ledger transfer issued by a release."""

    asset: str
    destination: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"asset": self.asset, "destination": self.destination, "amount": self.amount}
