"""
HTTP command surface for a single DualControlWallet.

Identity:
- The authenticated principal arrives in the `X-Principal` header; it is
  established upstream (gateway / IAM) and treated as an opaque identifier.
- Director-only routes refuse a missing or unknown principal with 403.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import uvicorn
from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from custody.common.config import CustodySettings, build_wallet, get_settings
from custody.common.logging import init_structured_logging, install_fastapi_request_id_middleware
from custody.wallet.errors import (
    AlreadyDecided,
    InvalidDeposit,
    InvalidOracleReading,
    InvalidProposal,
    NothingToTransfer,
    ProposalNotFound,
    SelfApprovalForbidden,
    ThresholdNotConfigured,
    TransferFailed,
    Unauthorized,
    WalletError,
)
from custody.wallet.models import ProposalStatus
from custody.wallet.wallet import DualControlWallet

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[WalletError], int] = {
    Unauthorized: 403,
    SelfApprovalForbidden: 403,
    ProposalNotFound: 404,
    AlreadyDecided: 409,
    ThresholdNotConfigured: 409,
    NothingToTransfer: 409,
    InvalidProposal: 422,
    InvalidDeposit: 422,
    InvalidOracleReading: 502,
    TransferFailed: 502,
}


def status_for_error(exc: WalletError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[cls]
    return 400


class ProposeRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="New display name (omit to keep)")
    targets: Optional[List[Optional[str]]] = Field(
        default=None, description="Up to two payout targets by slot; null keeps that slot"
    )
    threshold: Optional[int] = Field(default=None, description="New threshold value (omit or 0 to keep)")


class DecisionRequest(BaseModel):
    accept: bool


class DepositRequest(BaseModel):
    amount: int = Field(..., description="Inbound amount in base units")


def create_app(
    *,
    wallet: Optional[DualControlWallet] = None,
    settings: Optional[CustodySettings] = None,
) -> FastAPI:
    cfg = settings or get_settings()
    service = cfg.SERVICE_NAME
    w = wallet if wallet is not None else build_wallet(cfg)

    app = FastAPI(title="Custody Wallet", description="Dual-control wallet command surface.")
    app.state.wallet = w
    app.state.ready = True
    install_fastapi_request_id_middleware(app, service=service)

    @app.exception_handler(WalletError)
    async def _wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
        status_code = status_for_error(exc)
        logger.warning(
            "wallet.refused path=%s error=%s message=%s",
            request.url.path,
            exc.code,
            exc.message,
        )
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        return {"status": "ok", "service": service}

    @app.get("/readyz")
    async def readyz() -> dict[str, Any]:
        ready = bool(getattr(app.state, "ready", False))
        return {"status": "ok" if ready else "not_ready", "service": service}

    @app.get("/wallet")
    def get_wallet() -> dict[str, Any]:
        return {
            **w.state.model_dump(mode="json"),
            "asset": w.asset,
            "balance": w.balance(),
            "directors": list(w.directors),
            "next_proposal_id": w.next_proposal_id,
        }

    @app.get("/proposals")
    def list_proposals(status: Optional[ProposalStatus] = Query(default=None)) -> dict[str, Any]:
        return {"proposals": [p.model_dump(mode="json") for p in w.proposals(status=status)]}

    @app.get("/proposals/{proposal_id}")
    def get_proposal(proposal_id: int) -> dict[str, Any]:
        return w.get_proposal(proposal_id).model_dump(mode="json")

    @app.post("/proposals", status_code=201)
    def propose(req: ProposeRequest, x_principal: Optional[str] = Header(default=None)) -> dict[str, Any]:
        proposal_id = w.propose(x_principal, name=req.name, targets=req.targets, threshold=req.threshold)
        return w.get_proposal(proposal_id).model_dump(mode="json")

    @app.post("/proposals/{proposal_id}/decision")
    def decide(
        proposal_id: int,
        req: DecisionRequest,
        x_principal: Optional[str] = Header(default=None),
    ) -> dict[str, Any]:
        return w.decide(x_principal, proposal_id, accept=req.accept).model_dump(mode="json")

    @app.post("/funds/deposit")
    def deposit(req: DepositRequest, x_principal: Optional[str] = Header(default=None)) -> dict[str, Any]:
        balance = w.receive_funds(x_principal, req.amount)
        return {"asset": w.asset, "balance": balance}

    @app.post("/funds/release")
    def release(x_principal: Optional[str] = Header(default=None)) -> dict[str, Any]:
        transfers = w.release_funds(x_principal)
        return {
            "transfers": [t.to_dict() for t in transfers],
            "remaining_balance": w.balance(),
            "ts": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/funds/threshold-check")
    def threshold_check() -> dict[str, Any]:
        return {
            "meets_threshold": w.balance_meets_threshold(),
            "threshold_value": w.threshold_value,
        }

    return app


def main() -> None:
    cfg = get_settings()
    init_structured_logging(service=cfg.SERVICE_NAME, env=cfg.ENV, level=cfg.LOG_LEVEL)
    uvicorn.run(create_app(settings=cfg), host=cfg.HOST, port=cfg.PORT)


if __name__ == "__main__":
    main()
