from typing import List

from flask import current_app
from sqlalchemy import select

from palindrome.errors import InvalidRequestError, NotFoundError, NotParticipantError, StaleStateError
from palindrome.models import Challenge, utcnow
from palindrome.schemas import ChallengeSchema, MatchSchema, MatchStatus, NotificationType, RequestStatus
from .locking import locked_match


class ChallengeService:
    """Direct friend challenges. Skips quick-match claiming entirely."""

    def __init__(self, session, lifecycle, friends, notifier=None, time_limit_seconds: int = 300, logger=None):
        self.session = session
        self.lifecycle = lifecycle
        self.friends = friends
        self.notifier = notifier
        self.time_limit_seconds = time_limit_seconds
        self.logger = logger or current_app.logger

    def _notify(self, match_id: int) -> None:
        if self.notifier is not None:
            self.notifier.match_changed(match_id)

    def challenge_friend(self, from_user_id: str, to_user_id: str) -> ChallengeSchema:
        if not from_user_id or not to_user_id:
            raise InvalidRequestError('from_user_id and to_user_id are required')
        if from_user_id == to_user_id:
            raise InvalidRequestError('Cannot challenge yourself')
        if not self.friends.are_friends(from_user_id, to_user_id):
            raise InvalidRequestError('Can only challenge friends')

        match = self.lifecycle.add_match([from_user_id], time_limit_seconds=self.time_limit_seconds)
        challenge = Challenge(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            match_id=match.id,
            status=RequestStatus.PENDING.value,
            created_at=utcnow(),
        )
        self.session.add(challenge)
        self.session.flush()
        self.friends.notifications.add(
            to_user_id, NotificationType.CHALLENGE, f"{from_user_id} challenged you to a match!", body='Tap to accept.',
            data={'challenge_id': challenge.id, 'match_id': match.id, 'from_user_id': from_user_id},
        )
        self.session.commit()
        self.logger.info(f"[challenge] id={challenge.id} match={match.id} from={from_user_id} to={to_user_id}")
        return ChallengeSchema.model_validate(challenge)

    def _addressed_to(self, challenge_id: int, user_id: str) -> Challenge:
        challenge = self.session.get(Challenge, challenge_id)
        if challenge is None:
            raise NotFoundError('Challenge not found')
        if challenge.to_user_id != user_id:
            raise NotParticipantError('This challenge is not addressed to you')
        return challenge

    def accept_challenge(self, challenge_id: int, user_id: str) -> MatchSchema:
        challenge = self._addressed_to(challenge_id, user_id)
        with locked_match(self.session, challenge.match_id) as match:
            challenge = self.session.get(Challenge, challenge_id, populate_existing=True)
            if (match is None or challenge.status != RequestStatus.PENDING.value
                    or match.status != MatchStatus.WAITING.value):
                raise StaleStateError('Invalid or expired challenge')
            self.lifecycle.activate_with(match, user_id)
            challenge.status = RequestStatus.ACCEPTED.value
            self.session.commit()
            result = self.lifecycle.snapshot(match)
        self.logger.info(f"[challenge-accept] id={challenge_id} match={result.id} user={user_id}")
        self._notify(result.id)
        return result

    def decline_challenge(self, challenge_id: int, user_id: str) -> ChallengeSchema:
        """Mark declined. The match is untouched, but its room hears about it."""
        challenge = self._addressed_to(challenge_id, user_id)
        match_id = challenge.match_id
        with locked_match(self.session, match_id):
            challenge = self.session.get(Challenge, challenge_id, populate_existing=True)
            if challenge.status != RequestStatus.PENDING.value:
                raise StaleStateError('Invalid or expired challenge')
            challenge.status = RequestStatus.DECLINED.value
            self.session.commit()
            result = ChallengeSchema.model_validate(challenge)
        self.logger.info(f"[challenge-decline] id={challenge_id} match={match_id} user={user_id}")
        self._notify(match_id)
        return result

    def get_pending_challenges(self, user_id: str) -> List[ChallengeSchema]:
        rows = self.session.execute(
            select(Challenge)
            .where(Challenge.to_user_id == user_id, Challenge.status == RequestStatus.PENDING.value)
            .order_by(Challenge.created_at.desc(), Challenge.id.desc())
        ).scalars()
        return [ChallengeSchema.model_validate(c) for c in rows]
