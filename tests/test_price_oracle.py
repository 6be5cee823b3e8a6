from __future__ import annotations

from typing import Any

import pytest
import requests

from custody.adapters import oracle as oracle_mod
from custody.adapters.oracle import HttpPriceOracle, StaticPriceOracle
from custody.wallet.interfaces import OracleError, OracleReading


class _FakeResponse:
    def __init__(self, payload: Any, *, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _patch_get(monkeypatch, response: Any, calls: list[dict[str, Any]] | None = None) -> None:
    def _fake_get(url, headers=None, timeout=None):  # type: ignore[no-untyped-def]
        if calls is not None:
            calls.append({"url": url, "headers": headers, "timeout": timeout})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(oracle_mod.requests, "get", _fake_get)


def test_static_oracle_reading_and_update() -> None:
    o = StaticPriceOracle(price=2000, decimals=2)
    assert o.latest_rate() == OracleReading(price=2000, decimals=2)
    assert o.latest_rate().scale == 100

    o.set_rate(price=1500)
    assert o.latest_rate() == OracleReading(price=1500, decimals=2)
    o.set_rate(price=7, decimals=0)
    assert o.latest_rate() == OracleReading(price=7, decimals=0)


def test_http_oracle_parses_payload(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    _patch_get(monkeypatch, _FakeResponse({"price": 200000000000, "decimals": 8}), calls)

    o = HttpPriceOracle(url="https://oracle.example/eth-usd", timeout_s=3, headers={"X-Key": "k"})
    assert o.latest_rate() == OracleReading(price=200000000000, decimals=8)
    assert calls == [{"url": "https://oracle.example/eth-usd", "headers": {"X-Key": "k"}, "timeout": 3.0}]


def test_http_oracle_accepts_numeric_strings_and_custom_fields(monkeypatch) -> None:
    _patch_get(monkeypatch, _FakeResponse({"answer": "199900000000", "dec": "8"}))
    o = HttpPriceOracle(url="https://oracle.example", price_field="answer", decimals_field="dec")
    assert o.latest_rate() == OracleReading(price=199900000000, decimals=8)


def test_http_oracle_passes_through_non_positive_price(monkeypatch) -> None:
    # Rejecting a non-positive price is the wallet's job, not the adapter's.
    _patch_get(monkeypatch, _FakeResponse({"price": "-1", "decimals": 8}))
    assert HttpPriceOracle(url="https://oracle.example").latest_rate().price == -1


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("down"),
        requests.Timeout("slow"),
        _FakeResponse({"price": 1, "decimals": 8}, status_code=503),
        _FakeResponse(ValueError("not json")),
        _FakeResponse(["not", "an", "object"]),
        _FakeResponse({"price": 1}),
        _FakeResponse({"price": 1.5, "decimals": 8}),
        _FakeResponse({"price": True, "decimals": 8}),
    ],
)
def test_http_oracle_failures_raise_oracle_error(monkeypatch, response) -> None:
    _patch_get(monkeypatch, response)
    with pytest.raises(OracleError):
        HttpPriceOracle(url="https://oracle.example").latest_rate()


def test_http_oracle_requires_url() -> None:
    with pytest.raises(ValueError):
        HttpPriceOracle(url="  ")
