from __future__ import annotations

import logging
import threading
from typing import Any, Mapping, Optional

import requests

from custody.wallet.interfaces import OracleError, OracleReading, PriceOracle

logger = logging.getLogger(__name__)


def _as_int(v: Any, *, field: str) -> int:
    if isinstance(v, bool):
        raise OracleError(f"oracle field {field!r} must be an integer (got {v!r})")
    if isinstance(v, int):
        return v
    if isinstance(v, str) and v.strip().lstrip("-").isdigit():
        return int(v.strip())
    raise OracleError(f"oracle field {field!r} must be an integer (got {v!r})")


class StaticPriceOracle(PriceOracle):
    """Fixed rate, updatable at runtime (tests, local runs)."""

    def __init__(self, *, price: int, decimals: int = 8) -> None:
        self._mu = threading.Lock()
        self._reading = OracleReading(price=int(price), decimals=int(decimals))

    def set_rate(self, *, price: int, decimals: Optional[int] = None) -> None:
        with self._mu:
            d = self._reading.decimals if decimals is None else int(decimals)
            self._reading = OracleReading(price=int(price), decimals=d)

    def latest_rate(self) -> OracleReading:
        with self._mu:
            return self._reading


class HttpPriceOracle(PriceOracle):
    """
    Reads the latest rate from a JSON endpoint.

    Expected payload (field names configurable):
      {"price": 200000000000, "decimals": 8}

    Transport errors, non-2xx responses and malformed payloads raise OracleError.
    """

    def __init__(
        self,
        *,
        url: str,
        timeout_s: float = 10.0,
        price_field: str = "price",
        decimals_field: str = "decimals",
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        u = str(url or "").strip()
        if not u:
            raise ValueError("url is required")
        self._url = u
        self._timeout_s = float(timeout_s)
        self._price_field = price_field
        self._decimals_field = decimals_field
        self._headers = dict(headers or {})

    @property
    def url(self) -> str:
        return self._url

    def latest_rate(self) -> OracleReading:
        try:
            r = requests.get(self._url, headers=self._headers, timeout=self._timeout_s)
            r.raise_for_status()
            payload = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("oracle.fetch_failed url=%s error=%s", self._url, e)
            raise OracleError(f"oracle request failed: {e}") from e

        if not isinstance(payload, Mapping):
            raise OracleError("oracle payload must be a JSON object")
        if self._price_field not in payload or self._decimals_field not in payload:
            raise OracleError(
                f"oracle payload missing {self._price_field!r} or {self._decimals_field!r}"
            )
        return OracleReading(
            price=_as_int(payload[self._price_field], field=self._price_field),
            decimals=_as_int(payload[self._decimals_field], field=self._decimals_field),
        )
