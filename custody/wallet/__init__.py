"""
Dual-control wallet core.

This package is intentionally split into:
- models: immutable WalletState / Proposal shapes
- policy: director registry + authorization rules
- proposals: proposal store + lifecycle state machine
- state: pure WalletState construction and patch rules
- fund_gate: oracle-backed threshold check + payout split
- wallet: the locked facade exposing the command surface
"""

from .errors import (
    AlreadyDecided,
    InvalidDeposit,
    InvalidOracleReading,
    InvalidProposal,
    InvalidWalletConfig,
    NothingToTransfer,
    ProposalNotFound,
    SelfApprovalForbidden,
    ThresholdNotConfigured,
    TransferFailed,
    Unauthorized,
    WalletError,
)
from .interfaces import Ledger, LedgerError, OracleError, OracleReading, PriceOracle
from .models import Proposal, ProposalStatus, Transfer, WalletState
from .notifications import EventBus, WalletEvent
from .wallet import DualControlWallet

__all__ = [
    "AlreadyDecided",
    "DualControlWallet",
    "EventBus",
    "InvalidDeposit",
    "InvalidOracleReading",
    "InvalidProposal",
    "InvalidWalletConfig",
    "Ledger",
    "LedgerError",
    "NothingToTransfer",
    "OracleError",
    "OracleReading",
    "PriceOracle",
    "Proposal",
    "ProposalNotFound",
    "ProposalStatus",
    "SelfApprovalForbidden",
    "ThresholdNotConfigured",
    "Transfer",
    "TransferFailed",
    "Unauthorized",
    "WalletError",
    "WalletEvent",
    "WalletState",
]
