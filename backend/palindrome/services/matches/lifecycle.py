from typing import List, Optional

from flask import current_app
from sqlalchemy import exists, func, or_, and_, select, update
from sqlalchemy.exc import IntegrityError

from palindrome.errors import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    NotParticipantError,
    StaleStateError,
)
from palindrome.models import Challenge, Match, MatchPlayer, generate_invite_code, generate_seed, utcnow
from palindrome.schemas import INVITE_CODE_LENGTH, HeadToHeadSchema, MatchSchema, MatchStatus, RequestStatus
from .locking import locked_match, serialized_writes, supports_row_locks


def _require_user(user_id) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidRequestError('user_id is required')
    return user_id


def _require_score(score) -> int:
    if isinstance(score, bool) or not isinstance(score, int) or score < 0:
        raise InvalidRequestError('Score must be a non-negative integer')
    return score


class MatchLifecycle:
    """Create, join, play out and finish matches.

    ``session`` is the SQLAlchemy session to write through and ``notifier``
    (optional) is told about every committed change so subscribed clients
    refetch. Nothing here reaches for module-level handles.
    """

    def __init__(self, session, notifier=None, time_limit_seconds: int = 180,
                 invite_code_attempts: int = 10, logger=None, clock=utcnow):
        self.session = session
        self.notifier = notifier
        self.time_limit_seconds = time_limit_seconds
        self.invite_code_attempts = invite_code_attempts
        self.logger = logger or current_app.logger
        self.clock = clock

    # ---- helpers shared with the challenge and rematch flows ----

    def snapshot(self, match: Match) -> MatchSchema:
        return MatchSchema.model_validate(match)

    def notify(self, match_id: int) -> None:
        if self.notifier is not None:
            self.notifier.match_changed(match_id)

    def add_match(self, user_ids: List[str], status: MatchStatus = MatchStatus.WAITING,
                  invite_code: Optional[str] = None, time_limit_seconds: Optional[int] = None,
                  mode: str = 'race') -> Match:
        """Insert a match with its players and flush. Does not commit."""
        now = self.clock()
        match = Match(
            status=status.value,
            mode=mode,
            seed=generate_seed(),
            invite_code=invite_code,
            time_limit_seconds=time_limit_seconds or self.time_limit_seconds,
            created_at=now,
            started_at=now if status == MatchStatus.ACTIVE else None,
        )
        self.session.add(match)
        for user_id in user_ids:
            match.players.append(MatchPlayer(user_id=user_id, joined_at=now))
        self.session.flush()
        return match

    def activate_with(self, match: Match, user_id: str) -> None:
        """Seat ``user_id`` as second player and start the match. Does not commit."""
        if len(match.players) >= 2:
            raise StaleStateError(f'Match {match.id} is already full')
        now = self.clock()
        match.players.append(MatchPlayer(user_id=user_id, joined_at=now))
        match.transition_to(MatchStatus.ACTIVE)
        match.started_at = now

    def _cancel(self, match: Match) -> None:
        """Cancel ``match`` and withdraw a challenge still pending on it. Does not commit."""
        match.transition_to(MatchStatus.CANCELLED)
        challenge = match.challenge
        if challenge is not None and challenge.status == RequestStatus.PENDING.value:
            challenge.status = RequestStatus.DECLINED.value

    # ---- creation and matchmaking ----

    def create_quick_match(self, user_id: str) -> MatchSchema:
        _require_user(user_id)
        match = self.add_match([user_id])
        self.session.commit()
        self.logger.info(f"[match-create] match={match.id} user={user_id} invite=None")
        return self.snapshot(match)

    def create_invite_match(self, user_id: str) -> MatchSchema:
        _require_user(user_id)
        for attempt in range(1, self.invite_code_attempts + 1):
            code = generate_invite_code()
            try:
                match = self.add_match([user_id], invite_code=code)
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                self.logger.info(f"[invite-collision] code={code} attempt={attempt}")
                continue
            self.logger.info(f"[match-create] match={match.id} user={user_id} invite={code}")
            return self.snapshot(match)
        raise ConflictError('Could not generate unique invite code')

    def _claim_candidates(self, user_id: str):
        player_count = (
            select(func.count(MatchPlayer.id))
            .where(MatchPlayer.match_id == Match.id)
            .correlate(Match)
            .scalar_subquery()
        )
        already_in = exists().where(MatchPlayer.match_id == Match.id, MatchPlayer.user_id == user_id)
        challenged = exists().where(Challenge.match_id == Match.id)
        return (
            select(Match)
            .where(
                Match.status == MatchStatus.WAITING.value,
                Match.invite_code.is_(None),
                player_count == 1,
                ~already_in,
                ~challenged,
            )
            .order_by(Match.created_at, Match.id)
            .limit(1)
        )

    def claim_quick_match(self, user_id: str) -> MatchSchema:
        """Join the oldest open quick match, or open a new one.

        Runs as one transaction. Candidates are locked with SKIP LOCKED where
        the database supports row locks, so two claimers never seat
        themselves in the same match.
        """
        _require_user(user_id)
        with serialized_writes(self.session):
            stmt = self._claim_candidates(user_id)
            if supports_row_locks(self.session):
                stmt = stmt.with_for_update(skip_locked=True, of=Match)
            match = self.session.execute(stmt).scalar_one_or_none()
            joined = match is not None
            if joined:
                self.activate_with(match, user_id)
            else:
                match = self.add_match([user_id])
            self.session.commit()
            result = self.snapshot(match)
        self.logger.info(f"[match-claim] match={result.id} user={user_id} joined={joined}")
        if joined:
            self.notify(result.id)
        return result

    def join_by_invite_code(self, user_id: str, code: str) -> MatchSchema:
        _require_user(user_id)
        normalized = str(code or '').strip().upper()
        if len(normalized) != INVITE_CODE_LENGTH:
            raise InvalidRequestError(f'Invite code must be {INVITE_CODE_LENGTH} characters')

        # A retry after a successful join finds the now-active match again
        mine = exists().where(MatchPlayer.match_id == Match.id, MatchPlayer.user_id == user_id)
        match_id = self.session.execute(
            select(Match.id)
            .where(
                Match.invite_code == normalized,
                or_(
                    Match.status == MatchStatus.WAITING.value,
                    and_(Match.status == MatchStatus.ACTIVE.value, mine),
                ),
            )
            .order_by(Match.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        if match_id is None:
            raise StaleStateError('Invalid or expired invite code')

        with locked_match(self.session, match_id) as match:
            if match is None:
                raise StaleStateError('Invalid or expired invite code')
            joined = False
            if match.player_for(user_id) is None:
                if match.status != MatchStatus.WAITING.value or len(match.players) >= 2:
                    raise StaleStateError('Invalid or expired invite code')
                self.activate_with(match, user_id)
                self.session.commit()
                joined = True
            result = self.snapshot(match)
        if joined:
            self.logger.info(f"[match-join] match={result.id} user={user_id} code={normalized}")
            self.notify(result.id)
        return result

    # ---- leaving ----

    def leave_match(self, user_id: str, match_id: int) -> MatchSchema:
        """Abandon a waiting match. The last one out cancels it."""
        _require_user(user_id)
        with locked_match(self.session, match_id) as match:
            if match is None:
                raise NotFoundError('Match not found')
            player = match.player_for(user_id)
            if player is None:
                raise NotParticipantError('Not a participant in this match')
            if match.status != MatchStatus.WAITING.value:
                raise StaleStateError('Only a waiting match can be left')
            match.players.remove(player)
            if not match.players:
                self._cancel(match)
            self.session.commit()
            result = self.snapshot(match)
        self.logger.info(f"[match-leave] match={match_id} user={user_id} status={result.status.value}")
        self.notify(match_id)
        return result

    def cancel_match(self, user_id: str, match_id: int) -> MatchSchema:
        """Creator withdraws a waiting match; player rows are kept."""
        _require_user(user_id)
        with locked_match(self.session, match_id) as match:
            if match is None:
                raise NotFoundError('Match not found')
            if not match.players or match.players[0].user_id != user_id:
                raise NotParticipantError('Only the match creator may cancel it')
            if match.status != MatchStatus.WAITING.value:
                raise StaleStateError('Only a waiting match can be cancelled')
            self._cancel(match)
            self.session.commit()
            result = self.snapshot(match)
        self.logger.info(f"[match-cancel] match={match_id} user={user_id}")
        self.notify(match_id)
        return result

    # ---- scores ----

    def _participant(self, match_id: int, user_id: str):
        match = self.session.get(Match, match_id)
        if match is None:
            raise NotFoundError('Match not found')
        player = match.player_for(user_id)
        if player is None:
            raise NotParticipantError('Not a participant in this match')
        return match, player

    def update_live_score(self, match_id: int, user_id: str, score: int) -> MatchSchema:
        """Overwrite the running score the opponent sees. Ignored once submitted."""
        _require_user(user_id)
        _require_score(score)
        match, player = self._participant(match_id, user_id)
        if player.submitted_at is not None:
            return self.snapshot(match)
        if match.status != MatchStatus.ACTIVE.value:
            raise StaleStateError('Live scores are only accepted while the match is active')

        # Conditional so a racing final submission is never overwritten
        updated = self.session.execute(
            update(MatchPlayer)
            .where(MatchPlayer.id == player.id, MatchPlayer.submitted_at.is_(None))
            .values(score=score)
        ).rowcount
        self.session.commit()
        if updated:
            self.notify(match_id)
        return self.snapshot(self.session.get(Match, match_id))

    def submit_score(self, match_id: int, user_id: str, score: int) -> MatchSchema:
        """Record the final score once; the second submission settles the match."""
        _require_user(user_id)
        _require_score(score)
        with locked_match(self.session, match_id) as match:
            if match is None:
                raise NotFoundError('Match not found')
            player = match.player_for(user_id)
            if player is None:
                raise NotParticipantError('Not a participant in this match')
            changed = False
            if player.submitted_at is None:
                if match.status != MatchStatus.ACTIVE.value:
                    raise StaleStateError('Scores can only be submitted while the match is active')
                player.score = score
                player.submitted_at = self.clock()
                self._finish_if_complete(match)
                self.session.commit()
                changed = True
            result = self.snapshot(match)
        if changed:
            self.logger.info(
                f"[score-submit] match={match_id} user={user_id} score={score} status={result.status.value}"
            )
            self.notify(match_id)
        return result

    def _finish_if_complete(self, match: Match) -> bool:
        players = match.players
        if len(players) != 2 or any(p.submitted_at is None for p in players):
            return False
        first, second = players
        # A tie leaves both flags False; there is no separate draw marker
        first.is_winner = first.score > second.score
        second.is_winner = second.score > first.score
        match.transition_to(MatchStatus.FINISHED)
        match.finished_at = self.clock()
        return True

    # ---- reads ----

    def get_match(self, match_id: int) -> Optional[MatchSchema]:
        match = self.session.get(Match, match_id)
        if match is None:
            return None
        return self.snapshot(match)

    def get_recent_matches(self, user_id: str, limit: int = 10) -> List[MatchSchema]:
        stmt = (
            select(Match)
            .join(MatchPlayer, MatchPlayer.match_id == Match.id)
            .where(MatchPlayer.user_id == user_id)
            .order_by(Match.created_at.desc(), Match.id.desc())
            .limit(limit)
        )
        return [self.snapshot(m) for m in self.session.execute(stmt).scalars()]

    def head_to_head(self, user_id: str, other_id: str) -> HeadToHeadSchema:
        mine = select(MatchPlayer.match_id).where(MatchPlayer.user_id == user_id)
        theirs = select(MatchPlayer.match_id).where(MatchPlayer.user_id == other_id)
        stmt = select(Match).where(
            Match.status == MatchStatus.FINISHED.value,
            Match.id.in_(mine),
            Match.id.in_(theirs),
        )
        stats = HeadToHeadSchema()
        for match in self.session.execute(stmt).scalars():
            stats.total_matches += 1
            me = match.player_for(user_id)
            them = match.player_for(other_id)
            if me.is_winner:
                stats.my_wins += 1
            elif them.is_winner:
                stats.their_wins += 1
        return stats

    def get_recent_opponents(self, user_id: str, limit: int = 20) -> List[str]:
        """Distinct users ``user_id`` has shared a match with, most recent first."""
        mine = select(MatchPlayer.match_id).where(MatchPlayer.user_id == user_id)
        last_played = func.max(Match.created_at)
        rows = self.session.execute(
            select(MatchPlayer.user_id)
            .join(Match, Match.id == MatchPlayer.match_id)
            .where(MatchPlayer.match_id.in_(mine), MatchPlayer.user_id != user_id)
            .group_by(MatchPlayer.user_id)
            .order_by(last_played.desc(), MatchPlayer.user_id)
            .limit(limit)
        ).scalars()
        return list(rows)
