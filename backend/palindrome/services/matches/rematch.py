from flask import current_app
from sqlalchemy import select

from palindrome.errors import InvalidRequestError, NotFoundError, NotParticipantError, StaleStateError
from palindrome.models import Match, RematchRequest
from palindrome.schemas import (
    MatchStatus,
    RematchOutcome,
    RematchRequestSchema,
    RequestStatus,
)
from .locking import locked_match


class RematchProtocol:
    """Turn "play again" from both players into exactly one new match.

    All rematch writes for a finished match happen under that match's row
    lock, so whichever request lands second sees the first and accepts it
    instead of filing its own.
    """

    def __init__(self, session, lifecycle, notifier=None, logger=None):
        self.session = session
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.logger = logger or current_app.logger

    def _notify(self, match_id: int) -> None:
        if self.notifier is not None:
            self.notifier.match_changed(match_id)

    def _start_rematch(self, request: RematchRequest, finished: Match) -> Match:
        new_match = self.lifecycle.add_match(
            [request.from_user_id, request.to_user_id],
            status=MatchStatus.ACTIVE,
            time_limit_seconds=finished.time_limit_seconds,
            mode=finished.mode,
        )
        request.status = RequestStatus.ACCEPTED.value
        request.created_match_id = new_match.id
        return new_match

    def _accepted_outcome(self, request: RematchRequest, new_match: Match) -> RematchOutcome:
        return RematchOutcome(
            action='accepted',
            request=RematchRequestSchema.model_validate(request),
            match=self.lifecycle.snapshot(new_match),
        )

    def request_rematch(self, finished_match_id: int, user_id: str) -> RematchOutcome:
        changed = False
        with locked_match(self.session, finished_match_id) as match:
            if match is None:
                raise NotFoundError('Match not found')
            if match.player_for(user_id) is None:
                raise NotParticipantError('Not a participant in this match')
            if match.status != MatchStatus.FINISHED.value:
                raise StaleStateError('Rematch is only available once the match is finished')
            opponent = match.opponent_of(user_id)
            if opponent is None:
                raise InvalidRequestError('No opponent to rematch')

            requests = self.session.execute(
                select(RematchRequest).where(RematchRequest.match_id == match.id).order_by(RematchRequest.id)
            ).scalars().all()
            accepted = next((r for r in requests if r.status == RequestStatus.ACCEPTED.value), None)
            incoming = next((r for r in requests if r.status == RequestStatus.PENDING.value
                             and r.from_user_id == opponent.user_id and r.to_user_id == user_id), None)
            outgoing = next((r for r in requests if r.status == RequestStatus.PENDING.value
                             and r.from_user_id == user_id), None)

            if accepted is not None:
                outcome = self._accepted_outcome(accepted, self.session.get(Match, accepted.created_match_id))
            elif incoming is not None:
                # The opponent asked first: this call is the acceptance
                new_match = self._start_rematch(incoming, match)
                self.session.commit()
                outcome = self._accepted_outcome(incoming, new_match)
                changed = True
            elif outgoing is not None:
                outcome = RematchOutcome(action='requested', request=RematchRequestSchema.model_validate(outgoing))
            else:
                request = RematchRequest(match_id=match.id, from_user_id=user_id, to_user_id=opponent.user_id,
                                         status=RequestStatus.PENDING.value, created_at=self.lifecycle.clock())
                self.session.add(request)
                self.session.commit()
                outcome = RematchOutcome(action='requested', request=RematchRequestSchema.model_validate(request))
                changed = True
        if changed:
            self.logger.info(
                f"[rematch-request] match={finished_match_id} user={user_id} action={outcome.action}"
            )
            self._notify(finished_match_id)
        return outcome

    def _addressed_to(self, request_id: int, user_id: str) -> RematchRequest:
        request = self.session.get(RematchRequest, request_id)
        if request is None:
            raise NotFoundError('Rematch request not found')
        if request.to_user_id != user_id:
            raise NotParticipantError('This rematch request is not addressed to you')
        return request

    def accept_rematch(self, request_id: int, user_id: str) -> RematchOutcome:
        request = self._addressed_to(request_id, user_id)
        finished_match_id = request.match_id
        with locked_match(self.session, finished_match_id) as finished:
            request = self.session.get(RematchRequest, request_id, populate_existing=True)
            if request.status != RequestStatus.PENDING.value:
                raise StaleStateError('Rematch request is no longer pending')
            new_match = self._start_rematch(request, finished)
            self.session.commit()
            outcome = self._accepted_outcome(request, new_match)
        self.logger.info(f"[rematch-accept] request={request_id} match={outcome.match.id} user={user_id}")
        self._notify(finished_match_id)
        return outcome

    def decline_rematch(self, request_id: int, user_id: str) -> RematchRequestSchema:
        request = self._addressed_to(request_id, user_id)
        finished_match_id = request.match_id
        with locked_match(self.session, finished_match_id):
            request = self.session.get(RematchRequest, request_id, populate_existing=True)
            if request.status != RequestStatus.PENDING.value:
                raise StaleStateError('Rematch request is no longer pending')
            request.status = RequestStatus.DECLINED.value
            self.session.commit()
            result = RematchRequestSchema.model_validate(request)
        self.logger.info(f"[rematch-decline] request={request_id} match={finished_match_id} user={user_id}")
        self._notify(finished_match_id)
        return result
