import pytest

from pairwatch.errors import (
    AlreadyPaired,
    InvalidStatusTransition,
    RequestNotFound,
    Unauthorized,
)
from pairwatch.models.pairing_request import PairingStatus
from pairwatch.services.pairing_requests import PairingRequestManager
from pairwatch.services.pairing_state import PairingStateMachine, parse_status


@pytest.fixture
def manager(db, locks):
    return PairingRequestManager(db, locks)


@pytest.fixture
def machine(db, locks):
    return PairingStateMachine(db, locks)


def test_accept(machine, pending_request, bob):
    request = machine.transition(pending_request.id, bob.id, "accepted")

    assert request.status == PairingStatus.ACCEPTED
    assert request.decided_at is not None
    assert request.pending_pair_key is None


def test_reject(machine, pending_request, bob):
    request = machine.transition(pending_request.id, bob.id, PairingStatus.REJECTED)

    assert request.status == PairingStatus.REJECTED
    assert request.decided_at is not None
    assert request.pending_pair_key is None


def test_unknown_request(machine, bob):
    with pytest.raises(RequestNotFound):
        machine.transition("does-not-exist", bob.id, "accepted")


def test_requester_cannot_decide(db, machine, pending_request, alice):
    with pytest.raises(Unauthorized):
        machine.transition(pending_request.id, alice.id, "accepted")

    db.refresh(pending_request)
    assert pending_request.status == PairingStatus.PENDING


def test_outsider_cannot_decide(db, machine, pending_request, carol):
    with pytest.raises(Unauthorized):
        machine.transition(pending_request.id, carol.id, "rejected")

    db.refresh(pending_request)
    assert pending_request.status == PairingStatus.PENDING


def test_second_decision_fails(machine, pending_request, bob):
    machine.transition(pending_request.id, bob.id, "accepted")

    with pytest.raises(InvalidStatusTransition):
        machine.transition(pending_request.id, bob.id, "rejected")


def test_decided_request_rejects_before_authorization(
    machine, make_request, alice, bob
):
    rejected = make_request(alice, bob, PairingStatus.REJECTED)

    with pytest.raises(InvalidStatusTransition):
        machine.transition(rejected.id, alice.id, "accepted")


def test_transition_to_pending_fails(db, machine, pending_request, bob):
    with pytest.raises(InvalidStatusTransition):
        machine.transition(pending_request.id, bob.id, "pending")

    db.refresh(pending_request)
    assert pending_request.status == PairingStatus.PENDING


def test_unknown_status_fails(machine, pending_request, bob):
    with pytest.raises(InvalidStatusTransition):
        machine.transition(pending_request.id, bob.id, "maybe")


def test_unauthorized_checked_before_status_value(machine, pending_request, alice):
    with pytest.raises(Unauthorized):
        machine.transition(pending_request.id, alice.id, "maybe")


def test_accept_when_requester_paired_meanwhile(
    db, machine, make_request, alice, bob, carol
):
    request = make_request(alice, bob)
    make_request(alice, carol, PairingStatus.ACCEPTED)

    with pytest.raises(AlreadyPaired):
        machine.transition(request.id, bob.id, "accepted")

    db.refresh(request)
    assert request.status == PairingStatus.PENDING


def test_accept_when_recipient_paired_meanwhile(
    machine, make_request, alice, bob, carol
):
    first = make_request(alice, bob)
    second = make_request(carol, bob)
    machine.transition(first.id, bob.id, "accepted")

    with pytest.raises(AlreadyPaired):
        machine.transition(second.id, bob.id, "accepted")


def test_reject_allowed_while_paired(machine, make_request, alice, bob, carol):
    first = make_request(alice, bob)
    second = make_request(carol, bob)
    machine.transition(first.id, bob.id, "accepted")

    request = machine.transition(second.id, bob.id, "rejected")

    assert request.status == PairingStatus.REJECTED


def test_pair_then_new_request_fails(manager, machine, alice, bob, carol):
    request = manager.create(alice.id, bob.id)
    assert request.status == PairingStatus.PENDING

    accepted = machine.transition(request.id, bob.id, "accepted")
    assert accepted.status == PairingStatus.ACCEPTED

    with pytest.raises(AlreadyPaired):
        manager.create(alice.id, carol.id)


def test_rejection_frees_the_pair(manager, machine, alice, bob):
    request = manager.create(alice.id, bob.id)
    machine.transition(request.id, bob.id, "rejected")

    again = manager.create(alice.id, bob.id)

    assert again.id != request.id
    assert again.status == PairingStatus.PENDING


def test_parse_status():
    assert parse_status("accepted") is PairingStatus.ACCEPTED
    assert parse_status(PairingStatus.REJECTED) is PairingStatus.REJECTED
    with pytest.raises(InvalidStatusTransition):
        parse_status("ACCEPTED")
