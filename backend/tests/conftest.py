import os
import sys
import pytest

# Ensure the backend root (containing the `palindrome` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from palindrome import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MATCH_TIME_LIMIT_SEC = 180
    CHALLENGE_TIME_LIMIT_SEC = 300
    INVITE_CODE_MAX_ATTEMPTS = 10
    SYNC_POLL_INTERVAL_SEC = 2.5
    REMATCH_DECLINE_GRACE_SEC = 2


class RecordingNotifier:
    """Collects match ids instead of emitting Socket.IO events."""

    def __init__(self):
        self.changed = []

    def match_changed(self, match_id):
        self.changed.append(match_id)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import palindrome.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def threaded_app(tmp_path):
    """App on a file-backed SQLite database, for tests that use real threads."""

    class ThreadedConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'threaded.db'}"

    application = create_app(ThreadedConfig)
    with application.app_context():
        import palindrome.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def lifecycle(flask_app, notifier):
    from palindrome.services.matches import MatchLifecycle
    return MatchLifecycle(db.session, notifier=notifier)


@pytest.fixture()
def friends(flask_app):
    from palindrome.services.matches import FriendService
    return FriendService(db.session)


@pytest.fixture()
def challenges(flask_app, lifecycle, friends, notifier):
    from palindrome.services.matches import ChallengeService
    return ChallengeService(db.session, lifecycle, friends, notifier=notifier)


@pytest.fixture()
def rematches(flask_app, lifecycle, notifier):
    from palindrome.services.matches import RematchProtocol
    return RematchProtocol(db.session, lifecycle, notifier=notifier)


@pytest.fixture()
def finished_match(lifecycle):
    """A finished quick match between alice (12) and bob (7)."""
    lifecycle.claim_quick_match('alice')
    match = lifecycle.claim_quick_match('bob')
    lifecycle.submit_score(match.id, 'alice', 12)
    return lifecycle.submit_score(match.id, 'bob', 7)


@pytest.fixture()
def notifications(flask_app):
    from palindrome.services.matches import NotificationService
    return NotificationService(db.session)
