import threading

from sqlalchemy import func, select

from palindrome import db
from palindrome.models import Match, MatchPlayer, RematchRequest
from palindrome.schemas import MatchStatus
from palindrome.services.matches import MatchLifecycle, RematchProtocol


def _run_together(app, calls):
    """Start every call at once, each thread in its own app context."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = []

    def worker(index, call):
        with app.app_context():
            barrier.wait()
            try:
                results[index] = call()
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i, c)) for i, c in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    assert errors == []
    return results


def test_concurrent_quick_claims_pair_everyone_once(threaded_app):
    users = [f'user-{i}' for i in range(8)]
    calls = [lambda u=u: MatchLifecycle(db.session).claim_quick_match(u) for u in users]
    results = _run_together(threaded_app, calls)

    assert sorted(r.player(u).user_id for r, u in zip(results, users)) == sorted(users)
    with threaded_app.app_context():
        sizes = db.session.execute(
            select(MatchPlayer.match_id, func.count(MatchPlayer.id)).group_by(MatchPlayer.match_id)
        ).all()
        assert all(count <= 2 for _, count in sizes)
        statuses = db.session.execute(select(Match.status)).scalars().all()
        assert statuses.count(MatchStatus.ACTIVE.value) == 4
        assert statuses.count(MatchStatus.WAITING.value) == 0
        seated = db.session.execute(select(MatchPlayer.user_id)).scalars().all()
        assert sorted(seated) == sorted(users)


def test_simultaneous_rematch_requests_create_one_match(threaded_app):
    with threaded_app.app_context():
        lifecycle = MatchLifecycle(db.session)
        lifecycle.claim_quick_match('alice')
        match = lifecycle.claim_quick_match('bob')
        lifecycle.submit_score(match.id, 'alice', 4)
        lifecycle.submit_score(match.id, 'bob', 9)
        finished_id = match.id
        before = db.session.execute(select(func.count(Match.id))).scalar_one()

    def request(user_id):
        def call():
            return RematchProtocol(db.session, MatchLifecycle(db.session)).request_rematch(finished_id, user_id)
        return call

    outcomes = _run_together(threaded_app, [request('alice'), request('bob')])
    assert sorted(o.action for o in outcomes) == ['accepted', 'requested']

    with threaded_app.app_context():
        assert db.session.execute(select(func.count(Match.id))).scalar_one() == before + 1
        assert db.session.execute(select(func.count(RematchRequest.id))).scalar_one() == 1

        protocol = RematchProtocol(db.session, MatchLifecycle(db.session))
        new_ids = {protocol.request_rematch(finished_id, u).match.id for u in ('alice', 'bob')}
        accepted = next(o for o in outcomes if o.action == 'accepted')
        assert new_ids == {accepted.match.id}
