from __future__ import annotations

from typing import Any, Sequence


class WalletError(RuntimeError):
    """Base error for every refused wallet operation."""

    code: str = "wallet_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.context}


class Unauthorized(WalletError):
    """Raised when the caller is not one of the registered directors."""

    code = "unauthorized"


class SelfApprovalForbidden(WalletError):
    """Raised when a proposal's creator attempts to decide it."""

    code = "self_approval_forbidden"


class ProposalNotFound(WalletError):
    code = "not_found"


class AlreadyDecided(WalletError):
    """Raised when deciding a proposal that is no longer pending."""

    code = "already_decided"


class InvalidProposal(WalletError):
    """Raised when a proposal changes nothing or carries out-of-range values."""

    code = "invalid_proposal"


class ThresholdNotConfigured(WalletError):
    code = "threshold_not_configured"


class InvalidOracleReading(WalletError):
    """Raised when the oracle fails or reports a non-positive price."""

    code = "invalid_oracle_reading"


class NothingToTransfer(WalletError):
    code = "nothing_to_transfer"


class TransferFailed(WalletError):
    """
    Raised when a ledger transfer fails during release.

    Transfers completed before the failure are NOT rolled back; they are listed
    in `completed` so the caller can reconcile before retrying.
    """

    code = "transfer_failed"

    def __init__(self, message: str, *, completed: Sequence[Any] = (), **context: Any) -> None:
        super().__init__(message, **context)
        self.completed = tuple(completed)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["completed"] = [t.to_dict() if hasattr(t, "to_dict") else t for t in self.completed]
        return out


class InvalidDeposit(WalletError):
    code = "invalid_deposit"


class InvalidWalletConfig(WalletError):
    """Raised when the initial wallet parameters violate a wallet invariant."""

    code = "invalid_wallet_config"

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("wallet configuration invalid: " + "; ".join(self.errors), errors=self.errors)
