import pytest

from palindrome.errors import NotFoundError, NotParticipantError, StaleStateError
from palindrome.schemas import MatchStatus, RequestStatus


def test_first_request_waits(rematches, finished_match, notifier):
    outcome = rematches.request_rematch(finished_match.id, 'alice')
    assert outcome.action == 'requested'
    assert outcome.match is None
    assert outcome.request.from_user_id == 'alice'
    assert outcome.request.to_user_id == 'bob'
    assert outcome.request.status == RequestStatus.PENDING
    assert notifier.changed[-1] == finished_match.id


def test_repeated_request_returns_the_same_pending_row(rematches, finished_match, lifecycle):
    first = rematches.request_rematch(finished_match.id, 'alice')
    again = rematches.request_rematch(finished_match.id, 'alice')
    assert again.action == 'requested'
    assert again.request.id == first.request.id
    assert len(lifecycle.get_match(finished_match.id).rematch_requests) == 1


def test_crossing_requests_converge(rematches, finished_match, lifecycle):
    rematches.request_rematch(finished_match.id, 'alice')
    outcome = rematches.request_rematch(finished_match.id, 'bob')
    assert outcome.action == 'accepted'
    assert outcome.request.status == RequestStatus.ACCEPTED
    new_match = outcome.match
    assert new_match.id != finished_match.id
    assert new_match.status == MatchStatus.ACTIVE
    assert new_match.started_at is not None
    assert new_match.seed != finished_match.seed
    assert new_match.time_limit_seconds == finished_match.time_limit_seconds
    assert {p.user_id for p in new_match.players} == {'alice', 'bob'}

    # Late callers on either side see the same match
    assert rematches.request_rematch(finished_match.id, 'alice').match.id == new_match.id
    assert rematches.request_rematch(finished_match.id, 'bob').match.id == new_match.id

    finished = lifecycle.get_match(finished_match.id)
    assert [r.created_match_id for r in finished.rematch_requests] == [new_match.id]


def test_accept_rematch(rematches, finished_match, notifier):
    request = rematches.request_rematch(finished_match.id, 'alice').request
    outcome = rematches.accept_rematch(request.id, 'bob')
    assert outcome.action == 'accepted'
    assert outcome.request.created_match_id == outcome.match.id
    assert notifier.changed[-1] == finished_match.id

    with pytest.raises(StaleStateError, match='no longer pending'):
        rematches.accept_rematch(request.id, 'bob')


def test_decline_rematch(rematches, finished_match, lifecycle):
    request = rematches.request_rematch(finished_match.id, 'alice').request
    declined = rematches.decline_rematch(request.id, 'bob')
    assert declined.status == RequestStatus.DECLINED

    finished = lifecycle.get_match(finished_match.id)
    assert finished.rematch_requests[0].status == RequestStatus.DECLINED
    with pytest.raises(StaleStateError):
        rematches.accept_rematch(request.id, 'bob')


def test_only_the_recipient_answers(rematches, finished_match):
    request = rematches.request_rematch(finished_match.id, 'alice').request
    with pytest.raises(NotParticipantError):
        rematches.accept_rematch(request.id, 'alice')
    with pytest.raises(NotParticipantError):
        rematches.decline_rematch(request.id, 'mallory')
    with pytest.raises(NotFoundError):
        rematches.accept_rematch(9999, 'bob')


def test_rematch_needs_a_finished_match(rematches, lifecycle):
    lifecycle.claim_quick_match('alice')
    active = lifecycle.claim_quick_match('bob')
    with pytest.raises(StaleStateError):
        rematches.request_rematch(active.id, 'alice')
    with pytest.raises(NotFoundError):
        rematches.request_rematch(9999, 'alice')


def test_rematch_request_errors(rematches, finished_match):
    with pytest.raises(NotParticipantError):
        rematches.request_rematch(finished_match.id, 'mallory')
