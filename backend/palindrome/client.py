"""HTTP client for the match API and the realtime hook for SyncBridge."""

from typing import Callable, List, Optional

import httpx

from palindrome.errors import ERRORS_BY_KIND, MatchError
from palindrome.schemas import (
    ChallengeSchema,
    FriendshipSchema,
    HeadToHeadSchema,
    MatchSchema,
    NotificationSchema,
    RematchOutcome,
    RematchRequestSchema,
)
from palindrome.socketio_events import NAMESPACE
from palindrome.sync import SyncBridge


class MatchClient:
    """Thin wrapper over the JSON API.

    Error responses come back as the same domain exceptions the server
    raised, keyed by the ``kind`` field of the payload.
    """

    def __init__(self, base_url: str = '', user_id: Optional[str] = None, http: Optional[httpx.Client] = None,
                 timeout: float = 10.0):
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.user_id = user_id

    def close(self) -> None:
        self.http.close()

    def _call(self, method: str, path: str, **kwargs):
        response = self.http.request(method, path, **kwargs)
        if response.is_success:
            return response.json()
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        error_cls = ERRORS_BY_KIND.get(payload.get('kind'), MatchError)
        err = error_cls(payload.get('error') or f'HTTP {response.status_code}')
        err.status_code = response.status_code
        raise err

    def _me(self, user_id: Optional[str]) -> str:
        uid = user_id or self.user_id
        if not uid:
            raise ValueError('user_id is required')
        return uid

    # ---- matches ----

    def claim_quick_match(self, user_id: Optional[str] = None) -> MatchSchema:
        return MatchSchema.model_validate(self._call('POST', '/api/matches/quick', json={'user_id': self._me(user_id)}))

    def create_invite_match(self, user_id: Optional[str] = None) -> MatchSchema:
        data = self._call('POST', '/api/matches/create', json={'user_id': self._me(user_id), 'private': True})
        return MatchSchema.model_validate(data)

    def join_by_invite_code(self, code: str, user_id: Optional[str] = None) -> MatchSchema:
        data = self._call('POST', '/api/matches/join', json={'user_id': self._me(user_id), 'code': code})
        return MatchSchema.model_validate(data)

    def get_match(self, match_id: int) -> Optional[MatchSchema]:
        response = self.http.get(f'/api/matches/{match_id}')
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return MatchSchema.model_validate(response.json())

    def leave_match(self, match_id: int, user_id: Optional[str] = None) -> MatchSchema:
        data = self._call('POST', f'/api/matches/{match_id}/leave', json={'user_id': self._me(user_id)})
        return MatchSchema.model_validate(data)

    def update_live_score(self, match_id: int, score: int, user_id: Optional[str] = None) -> MatchSchema:
        data = self._call('POST', f'/api/matches/{match_id}/live-score',
                          json={'user_id': self._me(user_id), 'score': score})
        return MatchSchema.model_validate(data)

    def submit_score(self, match_id: int, score: int, user_id: Optional[str] = None) -> MatchSchema:
        data = self._call('POST', f'/api/matches/{match_id}/submit',
                          json={'user_id': self._me(user_id), 'score': score})
        return MatchSchema.model_validate(data)

    def recent_matches(self, user_id: Optional[str] = None) -> List[MatchSchema]:
        return [MatchSchema.model_validate(m) for m in self._call('GET', f'/api/users/{self._me(user_id)}/matches')]

    def head_to_head(self, other_id: str, user_id: Optional[str] = None) -> HeadToHeadSchema:
        data = self._call('GET', f'/api/users/{self._me(user_id)}/head-to-head/{other_id}')
        return HeadToHeadSchema.model_validate(data)

    # ---- rematches ----

    def request_rematch(self, match_id: int, user_id: Optional[str] = None) -> RematchOutcome:
        data = self._call('POST', f'/api/matches/{match_id}/rematch', json={'user_id': self._me(user_id)})
        return RematchOutcome.model_validate(data)

    def accept_rematch(self, request_id: int, user_id: Optional[str] = None) -> RematchOutcome:
        data = self._call('POST', f'/api/rematches/{request_id}/accept', json={'user_id': self._me(user_id)})
        return RematchOutcome.model_validate(data)

    def decline_rematch(self, request_id: int, user_id: Optional[str] = None) -> RematchRequestSchema:
        data = self._call('POST', f'/api/rematches/{request_id}/decline', json={'user_id': self._me(user_id)})
        return RematchRequestSchema.model_validate(data)

    # ---- challenges and friends ----

    def challenge_friend(self, to_user_id: str, user_id: Optional[str] = None) -> ChallengeSchema:
        data = self._call('POST', '/api/challenges',
                          json={'from_user_id': self._me(user_id), 'to_user_id': to_user_id})
        return ChallengeSchema.model_validate(data)

    def accept_challenge(self, challenge_id: int, user_id: Optional[str] = None) -> MatchSchema:
        data = self._call('POST', f'/api/challenges/{challenge_id}/accept', json={'user_id': self._me(user_id)})
        return MatchSchema.model_validate(data)

    def decline_challenge(self, challenge_id: int, user_id: Optional[str] = None) -> ChallengeSchema:
        data = self._call('POST', f'/api/challenges/{challenge_id}/decline', json={'user_id': self._me(user_id)})
        return ChallengeSchema.model_validate(data)

    def pending_challenges(self, user_id: Optional[str] = None) -> List[ChallengeSchema]:
        return [ChallengeSchema.model_validate(c)
                for c in self._call('GET', f'/api/users/{self._me(user_id)}/challenges')]

    def send_friend_request(self, friend_id: str, user_id: Optional[str] = None) -> FriendshipSchema:
        data = self._call('POST', '/api/friends', json={'user_id': self._me(user_id), 'friend_id': friend_id})
        return FriendshipSchema.model_validate(data)

    def accept_friend_request(self, request_id: int, user_id: Optional[str] = None) -> FriendshipSchema:
        data = self._call('POST', f'/api/friends/{request_id}/accept', json={'user_id': self._me(user_id)})
        return FriendshipSchema.model_validate(data)

    def recent_opponents(self, user_id: Optional[str] = None) -> List[str]:
        return self._call('GET', f'/api/users/{self._me(user_id)}/opponents')['opponents']

    # ---- notification inbox ----

    def notifications(self, unread_only: bool = False, limit: int = 50,
                      user_id: Optional[str] = None) -> List[NotificationSchema]:
        params = {'limit': limit, 'unread_only': 'true' if unread_only else 'false'}
        rows = self._call('GET', f'/api/users/{self._me(user_id)}/notifications', params=params)
        return [NotificationSchema.model_validate(n) for n in rows]

    def unread_count(self, user_id: Optional[str] = None) -> int:
        return self._call('GET', f'/api/users/{self._me(user_id)}/notifications/unread-count')['count']

    def mark_notification_read(self, notification_id: int, user_id: Optional[str] = None) -> NotificationSchema:
        data = self._call('POST', f'/api/notifications/{notification_id}/read', json={'user_id': self._me(user_id)})
        return NotificationSchema.model_validate(data)

    def mark_all_notifications_read(self, user_id: Optional[str] = None) -> int:
        return self._call('POST', f'/api/users/{self._me(user_id)}/notifications/read-all')['updated']

    # ---- observation ----

    def watch_match(self, match_id: int, on_update: Callable[[MatchSchema], None], subscribe=None,
                    interval: float = 2.5) -> SyncBridge:
        """Build (not start) a SyncBridge that refetches ``match_id``."""
        return SyncBridge(lambda: self.get_match(match_id), on_update, subscribe=subscribe, interval=interval)


def socketio_subscription(sio, match_id: int, namespace: str = NAMESPACE):
    """Adapt a connected python-socketio ``Client`` to SyncBridge's ``subscribe``.

    Only ``match_changed`` events for ``match_id`` fire the trigger.
    """

    def subscribe(trigger):
        state = {'active': True}

        def on_match_changed(data):
            if state['active'] and (data or {}).get('match_id') == match_id:
                trigger(data)

        sio.on('match_changed', on_match_changed, namespace=namespace)
        sio.emit('join_match', {'match_id': match_id}, namespace=namespace)

        def unsubscribe():
            state['active'] = False
            if sio.connected:
                sio.emit('leave_match', {'match_id': match_id}, namespace=namespace)

        return unsubscribe

    return subscribe
