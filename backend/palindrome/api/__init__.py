from flask import current_app, jsonify, request

from palindrome import db
from palindrome.errors import InvalidRequestError, MatchError
from palindrome.services.matches import (
    ChallengeService,
    FriendService,
    MatchLifecycle,
    NotificationService,
    RematchProtocol,
)
from palindrome.socketio_events import MatchNotifier


def error_response(exc: MatchError):
    current_app.logger.info(f"[api-error] kind={exc.kind} status={exc.status_code} message={exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def required(data: dict, *keys):
    missing = [k for k in keys if data.get(k) in (None, '')]
    if missing:
        raise InvalidRequestError(f"{', '.join(missing)} required")
    return [data[k] for k in keys]


def lifecycle() -> MatchLifecycle:
    cfg = current_app.config
    return MatchLifecycle(
        db.session,
        notifier=MatchNotifier(),
        time_limit_seconds=int(cfg.get('MATCH_TIME_LIMIT_SEC', 180)),
        invite_code_attempts=int(cfg.get('INVITE_CODE_MAX_ATTEMPTS', 10)),
    )


def friends() -> FriendService:
    return FriendService(db.session)


def challenges() -> ChallengeService:
    return ChallengeService(
        db.session,
        lifecycle(),
        friends(),
        notifier=MatchNotifier(),
        time_limit_seconds=int(current_app.config.get('CHALLENGE_TIME_LIMIT_SEC', 300)),
    )


def rematches() -> RematchProtocol:
    return RematchProtocol(db.session, lifecycle(), notifier=MatchNotifier())


def notifications() -> NotificationService:
    return NotificationService(db.session)
