from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from custody.wallet.errors import (
    AlreadyDecided,
    InvalidProposal,
    ProposalNotFound,
    SelfApprovalForbidden,
    Unauthorized,
)
from custody.wallet.models import ProposalStatus
from custody.wallet.policy import AuthorizationPolicy, DirectorRegistry
from custody.wallet.proposals import ProposalStore


class _Clock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=float(seconds))


def _store(clock: _Clock | None = None) -> ProposalStore:
    policy = AuthorizationPolicy(DirectorRegistry(["d1", "d2"]))
    if clock is None:
        return ProposalStore(policy=policy)
    return ProposalStore(policy=policy, now_fn=clock)


def test_ids_are_zero_based_and_sequential() -> None:
    store = _store()
    assert store.next_proposal_id == 0

    p0 = store.create("d1", proposed_name="A")
    assert p0.proposal_id == 0
    assert store.next_proposal_id == 1

    p1 = store.create("d2", proposed_threshold=10)
    assert p1.proposal_id == 1
    assert store.next_proposal_id == 2
    assert [p.proposal_id for p in store.list()] == [0, 1]


def test_created_record_is_pending_with_creator_and_no_decider() -> None:
    store = _store()
    p = store.create("d1", proposed_name="Ops", proposed_targets=["acct-1"], proposed_threshold=50)
    assert p.status == ProposalStatus.PENDING
    assert p.creator == "d1"
    assert p.decider is None
    assert p.proposed_name == "Ops"
    assert p.proposed_targets == ("acct-1", None)
    assert p.proposed_threshold == 50


def test_non_director_cannot_propose_and_store_is_unchanged() -> None:
    store = _store()
    with pytest.raises(Unauthorized):
        store.create("outsider", proposed_name="X")
    assert store.next_proposal_id == 0
    assert len(store) == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"proposed_name": "   "},
        {"proposed_targets": []},
        {"proposed_targets": [None, ""]},
        {"proposed_threshold": 0},
        {"proposed_name": "", "proposed_targets": None, "proposed_threshold": 0},
    ],
)
def test_empty_proposal_is_rejected_at_creation(kwargs) -> None:
    store = _store()
    with pytest.raises(InvalidProposal):
        store.create("d1", **kwargs)
    assert store.next_proposal_id == 0


def test_out_of_range_fields_are_rejected() -> None:
    store = _store()
    with pytest.raises(InvalidProposal):
        store.create("d1", proposed_targets=["a", "b", "c"])
    with pytest.raises(InvalidProposal):
        store.create("d1", proposed_threshold=-1)
    with pytest.raises(InvalidProposal):
        store.create("d1", proposed_threshold="100")
    with pytest.raises(InvalidProposal):
        store.create("d1", proposed_threshold=True)
    assert store.next_proposal_id == 0


def test_single_string_target_fills_first_slot() -> None:
    p = _store().create("d1", proposed_targets="acct-9")
    assert p.proposed_targets == ("acct-9", None)


def test_decide_unknown_id_is_not_found() -> None:
    store = _store()
    with pytest.raises(ProposalNotFound):
        store.decide("d2", 0, accept=True)
    with pytest.raises(ProposalNotFound):
        store.decide("d2", "nope", accept=True)


def test_not_found_is_checked_before_authorization() -> None:
    with pytest.raises(ProposalNotFound):
        _store().decide("outsider", 7, accept=True)


def test_accept_sets_decider_status_and_timestamp() -> None:
    clock = _Clock(datetime(2026, 1, 1, tzinfo=timezone.utc))
    store = _store(clock)
    store.create("d1", proposed_name="Ops")
    clock.advance(30)

    decided = store.decide("d2", 0, accept=True)
    assert decided.status == ProposalStatus.ACCEPTED
    assert decided.decider == "d2"
    assert decided.decided_at_utc == clock.now
    assert store.get(0) == decided


def test_reject_records_status_and_decider() -> None:
    store = _store()
    store.create("d2", proposed_threshold=5)
    decided = store.decide("d1", 0, accept=False)
    assert decided.status == ProposalStatus.REJECTED
    assert decided.decider == "d1"


def test_creator_cannot_decide_own_proposal() -> None:
    store = _store()
    store.create("d1", proposed_name="Ops")
    with pytest.raises(SelfApprovalForbidden):
        store.decide("d1", 0, accept=True)
    assert store.get(0).status == ProposalStatus.PENDING


@pytest.mark.parametrize("first", [True, False])
@pytest.mark.parametrize("second", [True, False])
def test_terminal_proposal_cannot_be_redecided(first: bool, second: bool) -> None:
    store = _store()
    store.create("d1", proposed_name="Ops")
    decided = store.decide("d2", 0, accept=first)
    with pytest.raises(AlreadyDecided):
        store.decide("d2", 0, accept=second)
    assert store.get(0) == decided


def test_build_decision_does_not_store() -> None:
    store = _store()
    store.create("d1", proposed_name="Ops")
    built = store.build_decision("d2", 0, accept=True)
    assert built.status == ProposalStatus.ACCEPTED
    assert store.get(0).status == ProposalStatus.PENDING

    store.commit(built)
    assert store.get(0).status == ProposalStatus.ACCEPTED


def test_commit_refuses_stale_decision() -> None:
    store = _store()
    store.create("d1", proposed_name="Ops")
    a = store.build_decision("d2", 0, accept=True)
    b = store.build_decision("d2", 0, accept=False)
    store.commit(a)
    with pytest.raises(AlreadyDecided):
        store.commit(b)
    assert store.get(0).status == ProposalStatus.ACCEPTED


def test_list_filters_by_status() -> None:
    store = _store()
    store.create("d1", proposed_name="A")
    store.create("d1", proposed_name="B")
    store.create("d2", proposed_name="C")
    store.decide("d2", 0, accept=True)
    store.decide("d1", 2, accept=False)

    assert [p.proposal_id for p in store.list(status=ProposalStatus.PENDING)] == [1]
    assert [p.proposal_id for p in store.list(status=ProposalStatus.ACCEPTED)] == [0]
    assert [p.proposal_id for p in store.list(status=ProposalStatus.REJECTED)] == [2]
