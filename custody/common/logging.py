"""
JSON line logging for the wallet service.

Every record becomes one JSON object on stdout carrying service, env, sha,
request_id and event_type. Wallet notifications go through `log_event` so
they can be filtered by `event_type` (proposal.created, funds.released, ...).
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional


_REQUEST_ID: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else on a record came in via `extra=`.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName", "event_type", "request_id", "correlation_id"}


def _clean_text(v: Any, *, max_len: int = 256) -> str:
    s = "" if v is None else str(v).replace("\n", " ").replace("\r", " ").strip()
    return s[: max_len - 1] + "…" if len(s) > max_len else s


def _env_any(*names: str, default: str) -> str:
    for name in names:
        v = (os.getenv(name) or "").strip()
        if v:
            return _clean_text(v, max_len=128)
    return default


def get_request_id() -> Optional[str]:
    return _REQUEST_ID.get()


@contextmanager
def bind_request_id(*, request_id: str | None = None) -> Iterator[str]:
    """Bind a request id for the duration of the block (generated when missing)."""
    rid = _clean_text(request_id, max_len=128) or uuid.uuid4().hex
    token = _REQUEST_ID.set(rid)
    try:
        yield rid
    finally:
        _REQUEST_ID.reset(token)


class JsonLogFormatter(logging.Formatter):
    def __init__(self, *, service: str | None = None, env: str | None = None, sha: str | None = None) -> None:
        super().__init__()
        self._service = service or _env_any("CUSTODY_SERVICE_NAME", "SERVICE_NAME", default="custody-wallet")
        self._env = env or _env_any("CUSTODY_ENV", "ENV", default="unknown")
        self._sha = sha or _env_any("GIT_SHA", "COMMIT_SHA", default="unknown")

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        rid = getattr(record, "request_id", None) or get_request_id()
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "severity": record.levelname,
            "service": self._service,
            "env": self._env,
            "sha": self._sha,
            "request_id": rid,
            "correlation_id": getattr(record, "correlation_id", None) or rid,
            "event_type": getattr(record, "event_type", None) or "log",
            "message": _clean_text(record.getMessage(), max_len=4000),
            "logger": record.name,
        }
        if record.exc_info:
            payload["exception"] = "".join(traceback.format_exception(*record.exc_info))[-8000:]

        for k, v in record.__dict__.items():
            if k not in _RECORD_ATTRS and not k.startswith("_"):
                payload[k] = v

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def init_structured_logging(
    *,
    service: str | None = None,
    env: str | None = None,
    sha: str | None = None,
    level: str | int | None = None,
) -> None:
    """
    Route the root logger to one JSON handler on stdout.

    Safe to call multiple times (last call wins).
    """
    lvl = level or os.getenv("LOG_LEVEL", "INFO").upper()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter(service=service, env=env, sha=sha))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(lvl)


def log_event(
    logger: logging.Logger,
    event_type: str,
    *,
    severity: str = "INFO",
    message: str | None = None,
    **fields: Any,
) -> None:
    lvl = getattr(logging, str(severity).upper(), logging.INFO)
    logger.log(lvl, message or event_type, extra={"event_type": event_type, **fields})


def install_fastapi_request_id_middleware(app: Any, *, service: str | None = None) -> None:
    """
    Read/propagate X-Request-ID and emit one http.request event per request,
    tagged with the caller's X-Principal.
    """
    from starlette.requests import Request

    http_logger = logging.getLogger("http")

    @app.middleware("http")
    async def _request_id_mw(request: Request, call_next):  # type: ignore[no-untyped-def]
        start = time.perf_counter()
        status_code = 500
        with bind_request_id(request_id=request.headers.get("x-request-id")) as bound:
            try:
                resp = await call_next(request)
                status_code = resp.status_code
            finally:
                log_event(
                    http_logger,
                    "http.request",
                    service=service,
                    method=request.method,
                    path=request.url.path,
                    status_code=status_code,
                    duration_ms=int((time.perf_counter() - start) * 1000),
                    principal=request.headers.get("x-principal"),
                )
        resp.headers["X-Request-ID"] = bound
        return resp
