from __future__ import annotations

import json
import logging

import pytest

from custody.adapters.ledger import InMemoryLedger
from custody.adapters.oracle import StaticPriceOracle
from custody.common.logging import bind_request_id, get_request_id, init_structured_logging, log_event
from custody.wallet import DualControlWallet


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def _init_json_logging(monkeypatch) -> None:
    monkeypatch.setenv("GIT_SHA", "deadbeef")
    init_structured_logging(service="custody-test", env="test", level="INFO")


def _lines(capsys) -> list[dict]:
    out = capsys.readouterr().out.strip().splitlines()
    return [json.loads(line) for line in out if line.startswith("{")]


def test_log_event_emits_one_json_object_with_core_fields(monkeypatch, capsys) -> None:
    _init_json_logging(monkeypatch)
    log_event(logging.getLogger("custody.test"), "wallet.test_event", proposal_id=3)

    lines = _lines(capsys)
    assert len(lines) == 1
    line = lines[0]
    for key in ("timestamp", "severity", "service", "env", "sha", "event_type", "message", "logger"):
        assert key in line
    assert line["service"] == "custody-test"
    assert line["env"] == "test"
    assert line["sha"] == "deadbeef"
    assert line["event_type"] == "wallet.test_event"
    assert line["proposal_id"] == 3


def test_request_id_is_bound_to_log_lines(monkeypatch, capsys) -> None:
    _init_json_logging(monkeypatch)
    assert get_request_id() is None
    with bind_request_id(request_id="req-42") as rid:
        assert rid == "req-42"
        logging.getLogger("custody.test").info("inside")
    assert get_request_id() is None

    line = _lines(capsys)[-1]
    assert line["request_id"] == "req-42"
    assert line["correlation_id"] == "req-42"


def test_bind_request_id_generates_when_missing() -> None:
    with bind_request_id() as rid:
        assert rid
        assert get_request_id() == rid


def test_exceptions_are_included(monkeypatch, capsys) -> None:
    _init_json_logging(monkeypatch)
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logging.getLogger("custody.test").exception("failed")
    line = _lines(capsys)[-1]
    assert line["severity"] == "ERROR"
    assert "RuntimeError: boom" in line["exception"]


def test_wallet_notifications_are_logged_as_events(monkeypatch, capsys) -> None:
    _init_json_logging(monkeypatch)
    wallet = DualControlWallet(
        directors=["d1", "d2"],
        display_name="Logged",
        payout_targets=["a"],
        ledger=InMemoryLedger(),
        oracle=StaticPriceOracle(price=1),
    )
    pid = wallet.propose("d1", name="Ops")
    wallet.decide("d2", pid, accept=True)

    events = [l for l in _lines(capsys) if l["event_type"] != "log"]
    assert [e["event_type"] for e in events] == [
        "proposal.created",
        "proposal.executed",
        "proposal.status_changed",
    ]
    assert events[0]["creator"] == "d1"
    assert events[0]["wallet"] == "Logged"
    assert events[2]["status"] == "ACCEPTED"


def test_failing_subscriber_is_logged_and_does_not_undo_operation(monkeypatch, capsys) -> None:
    _init_json_logging(monkeypatch)
    wallet = DualControlWallet(
        directors=["d1", "d2"],
        display_name="W",
        payout_targets=["a"],
        ledger=InMemoryLedger(),
        oracle=StaticPriceOracle(price=1),
    )

    def _broken(event) -> None:  # type: ignore[no-untyped-def]
        raise ValueError("observer bug")

    wallet.events.subscribe(_broken)
    pid = wallet.propose("d1", threshold=9)
    assert wallet.get_proposal(pid).proposed_threshold == 9

    failures = [l for l in _lines(capsys) if "wallet.subscriber_failed" in l["message"]]
    assert len(failures) == 1
    assert "observer bug" in failures[0]["exception"]


def test_unsubscribe_stops_delivery() -> None:
    wallet = DualControlWallet(
        directors=["d1", "d2"],
        display_name="W",
        payout_targets=["a"],
        ledger=InMemoryLedger(),
        oracle=StaticPriceOracle(price=1),
    )
    seen: list = []
    unsubscribe = wallet.events.subscribe(seen.append)
    wallet.propose("d1", name="A")
    unsubscribe()
    wallet.propose("d1", name="B")
    assert len(seen) == 1
    assert len(wallet.events.history) == 2
