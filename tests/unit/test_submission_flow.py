"""Unit tests for the submission flow: tier gate, consumption, queueing, refund"""

import pytest
from datetime import date
from deckvault.domain.exceptions import (
    InsufficientCreditsError,
    InsufficientTierError,
    InvalidRequestError,
    PersistenceError,
    QueueCapacityReachedError,
)
from deckvault.domain.models import Profile, SubmissionRequest, SubmissionStatus, SubmissionType
from deckvault.services.credit_ledger import CreditLedgerService
from deckvault.services.submissions import SubmissionService


MARCH = date(2025, 3, 1)

DECK_FIELDS = {
    "patreon_username": "Brago",
    "email": "Brago@Example.com",
    "color_preference": "Azorius",
    "bracket": "3",
    "budget": "$200",
    "coffee": "Flat white",
    "commander": "Brago, King Eternal",
}

ROAST_FIELDS = {
    "preferred_name": "Brago",
    "deck_description": "Blink value pile",
    "moxfield_link": "https://www.moxfield.com/decks/abc123",
    "target_bracket": "3",
    "art_choices_intentional": "yes",
    "email": "brago@example.com",
}


def deck(is_draft: bool = False) -> SubmissionRequest:
    return SubmissionRequest(SubmissionType.DECK, dict(DECK_FIELDS), is_draft=is_draft)


def roast() -> SubmissionRequest:
    return SubmissionRequest(SubmissionType.ROAST, dict(ROAST_FIELDS))


@pytest.fixture
def service(ledger_port, submission_port) -> SubmissionService:
    return SubmissionService(CreditLedgerService(ledger_port), submission_port, max_queued=3)


def test_wizard_month_scenario(service, ledger_port, submission_port):
    """Test a Wizard spends two deck credits, then queues"""
    wizard = Profile(user_id="u1", email="u1@example.com", tier="Wizard")

    first = service.submit(wizard, deck(), today=date(2025, 3, 5))
    second = service.submit(wizard, deck(), today=date(2025, 3, 9))
    third = service.submit(wizard, deck(), today=date(2025, 3, 20))

    assert (first.record.status, first.credits_remaining) == (SubmissionStatus.PENDING, 1)
    assert (second.record.status, second.credits_remaining) == (SubmissionStatus.PENDING, 0)
    assert (third.record.status, third.credits_remaining) == (SubmissionStatus.QUEUED, 0)
    assert third.submission_number == 3
    assert all(r.submission_month == "2025-03-01" for r in submission_port.records)
    assert ledger_port.rows["u1"].balances["deck"] == 0


def test_new_month_refreshes_before_consuming(service, ledger_port):
    ledger_port.seed("u1", {"deck": 0}, {"deck": date(2025, 2, 1)})
    wizard = Profile(user_id="u1", email=None, tier="Wizard")

    outcome = service.submit(wizard, deck(), today=MARCH)

    assert outcome.record.status == SubmissionStatus.PENDING
    assert outcome.credits_remaining == 1


def test_queue_capacity_reached(service, ledger_port, submission_port):
    """Test a fourth queued request in the month is rejected without a record"""
    ledger_port.seed("u1", {"deck": 0}, {"deck": MARCH})
    duke = Profile(user_id="u1", email=None, tier="Duke")

    for _ in range(3):
        assert service.submit(duke, deck(), today=MARCH).record.status == SubmissionStatus.QUEUED

    with pytest.raises(QueueCapacityReachedError):
        service.submit(duke, deck(), today=MARCH)
    assert len(submission_port.records) == 3


def test_queue_counts_per_type(service, ledger_port):
    """Test queued roasts do not fill the deck queue"""
    ledger_port.seed("u1", {"deck": 0, "roast": 0}, {"deck": MARCH, "roast": MARCH})
    duke = Profile(user_id="u1", email=None, tier="Duke")

    for _ in range(3):
        service.submit(duke, roast(), today=MARCH)

    assert service.submit(duke, deck(), today=MARCH).record.status == SubmissionStatus.QUEUED


def test_submission_write_failure_refunds_credit(service, ledger_port, submission_port):
    """Test the credit spent before a failed write is given back"""
    ledger_port.seed("u1", {"deck": 2}, {"deck": MARCH})
    submission_port.fail_create = True
    wizard = Profile(user_id="u1", email=None, tier="Wizard")

    with pytest.raises(PersistenceError):
        service.submit(wizard, deck(), today=MARCH)

    assert ledger_port.rows["u1"].balances["deck"] == 2


def test_insufficient_tier(service, ledger_port, submission_port):
    emissary = Profile(user_id="u1", email=None, tier="Emissary")

    with pytest.raises(InsufficientTierError, match="Duke"):
        service.submit(emissary, deck(), today=MARCH)

    assert ledger_port.rows == {}
    assert submission_port.records == []


def test_emissary_can_request_roast(service):
    emissary = Profile(user_id="u1", email=None, tier="Emissary")

    outcome = service.submit(emissary, roast(), today=MARCH)

    assert outcome.record.status == SubmissionStatus.PENDING
    assert outcome.credits_remaining == 0


def test_zero_allocation_is_insufficient_credits(ledger_port, submission_port, monkeypatch):
    """Test a tier that passes the gate but grants no credits is refused, not queued"""
    from deckvault.services import submissions as submissions_module

    monkeypatch.setitem(submissions_module.MINIMUM_TIER, SubmissionType.DECK, "Knight")
    service = SubmissionService(CreditLedgerService(ledger_port), submission_port)
    knight = Profile(user_id="u1", email=None, tier="Knight")

    with pytest.raises(InsufficientCreditsError):
        service.submit(knight, deck(), today=MARCH)
    assert submission_port.records == []


def test_draft_skips_credits(service, ledger_port):
    """Test drafts are saved without tier gate or credit use"""
    citizen = Profile(user_id="u1", email=None, tier="Citizen")

    outcome = service.submit(citizen, deck(is_draft=True), today=MARCH)

    assert outcome.record.status == SubmissionStatus.DRAFT
    assert outcome.credits_remaining is None
    assert ledger_port.rows == {}


@pytest.mark.parametrize("role", ["admin", "moderator", "developer"])
def test_privileged_roles_bypass_credits(service, ledger_port, role: str):
    staff = Profile(user_id="u1", email=None, tier=None, role=role)

    outcome = service.submit(staff, deck(), today=MARCH)

    assert outcome.record.status == SubmissionStatus.PENDING
    assert outcome.credits_remaining is None
    assert ledger_port.rows == {}


def test_invalid_fields_touch_no_credits(service, ledger_port):
    wizard = Profile(user_id="u1", email=None, tier="Wizard")
    request = deck()
    request.fields["email"] = "nope"

    with pytest.raises(InvalidRequestError):
        service.submit(wizard, request, today=MARCH)
    assert ledger_port.rows == {}


def test_submission_number_falls_back_when_count_fails(service, submission_port, monkeypatch):
    def broken_count(submission_type):
        raise PersistenceError("submission_count failed")

    monkeypatch.setattr(submission_port, "count_by_type", broken_count)
    wizard = Profile(user_id="u1", email=None, tier="Wizard")

    assert service.submit(wizard, deck(), today=MARCH).submission_number == 1


def test_queue_policy_sees_refreshed_balance(service, ledger_port, monkeypatch):
    """Test the decision table is consulted with the real balance, not a hard-coded zero"""
    from deckvault.services import submissions as submissions_module

    calls = []
    real_decide = submissions_module.decide_submission

    def spy(credit_balance, current_queued_count, max_queued):
        calls.append((credit_balance, current_queued_count, max_queued))
        return real_decide(credit_balance, current_queued_count, max_queued)

    monkeypatch.setattr(submissions_module, "decide_submission", spy)
    wizard = Profile(user_id="u1", email=None, tier="Wizard")

    service.submit(wizard, deck(), today=MARCH)

    assert calls == [(2, 0, 3)]


def test_credit_beats_full_queue(service, ledger_port, submission_port):
    """Test a member with credits left is charged and pending even when the queue is full"""
    ledger_port.seed("u1", {"deck": 0}, {"deck": MARCH})
    duke = Profile(user_id="u1", email=None, tier="Duke")
    for _ in range(3):
        service.submit(duke, deck(), today=MARCH)
    ledger_port.seed("u1", {"deck": 1}, {"deck": MARCH})

    outcome = service.submit(duke, deck(), today=MARCH)

    assert outcome.record.status == SubmissionStatus.PENDING
    assert outcome.credits_remaining == 0
