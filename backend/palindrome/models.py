from datetime import datetime, timezone
import secrets
import uuid

from palindrome import db
from palindrome.errors import StaleStateError
from palindrome.schemas import MatchStatus, RequestStatus, FriendStatus, INVITE_CODE_LENGTH

# No ambiguous 0/O, 1/I
INVITE_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'

ALLOWED_TRANSITIONS = {
    MatchStatus.WAITING: {MatchStatus.ACTIVE, MatchStatus.CANCELLED},
    MatchStatus.ACTIVE: {MatchStatus.FINISHED, MatchStatus.CANCELLED},
    MatchStatus.FINISHED: set(),
    MatchStatus.CANCELLED: set(),
}


def utcnow():
    return datetime.now(timezone.utc)


def generate_invite_code(length=INVITE_CODE_LENGTH):
    """Generate a short invite code. Uniqueness is enforced by the database."""
    return ''.join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def generate_seed():
    return str(uuid.uuid4())


class Match(db.Model):
    __tablename__ = 'match'
    __table_args__ = (
        # Codes only need to be unique among matches still waiting for a partner
        db.Index(
            'uq_match_waiting_invite_code', 'invite_code', unique=True,
            postgresql_where=db.text("status = 'waiting'"),
            sqlite_where=db.text("status = 'waiting'"),
        ),
    )
    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    status = db.Column(db.String(16), nullable=False, default=MatchStatus.WAITING.value, index=True)
    mode = db.Column(db.String(32), nullable=False, default='race')
    seed = db.Column(db.String(64), nullable=False, default=generate_seed)
    invite_code = db.Column(db.String(INVITE_CODE_LENGTH), nullable=True)
    time_limit_seconds = db.Column(db.Integer, nullable=False, default=180)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    finished_at = db.Column(db.DateTime(timezone=True), nullable=True)

    players = db.relationship('MatchPlayer', back_populates='match', order_by='MatchPlayer.id',
                              cascade='all, delete-orphan')
    challenge = db.relationship('Challenge', back_populates='match', uselist=False)
    rematch_requests = db.relationship('RematchRequest', foreign_keys='RematchRequest.match_id',
                                       back_populates='match', order_by='RematchRequest.id')

    def transition_to(self, status: MatchStatus) -> None:
        """Move forward in the lifecycle; backwards or sideways moves are stale."""
        current = MatchStatus(self.status)
        if status not in ALLOWED_TRANSITIONS[current]:
            raise StaleStateError(f'Match {self.id} cannot go from {current.value} to {status.value}')
        self.status = status.value

    def player_for(self, user_id):
        return next((p for p in self.players if p.user_id == user_id), None)

    def opponent_of(self, user_id):
        return next((p for p in self.players if p.user_id != user_id), None)


class MatchPlayer(db.Model):
    __tablename__ = 'match_player'
    __table_args__ = (db.UniqueConstraint('match_id', 'user_id', name='uq_match_player_user'),)
    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('match.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_winner = db.Column(db.Boolean, nullable=True)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    match = db.relationship('Match', back_populates='players')


class Challenge(db.Model):
    __tablename__ = 'challenge'
    id = db.Column(db.Integer, primary_key=True)
    from_user_id = db.Column(db.String(64), nullable=False)
    to_user_id = db.Column(db.String(64), nullable=False, index=True)
    match_id = db.Column(db.Integer, db.ForeignKey('match.id'), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default=RequestStatus.PENDING.value)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    match = db.relationship('Match', back_populates='challenge')


class RematchRequest(db.Model):
    __tablename__ = 'rematch_request'
    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('match.id'), nullable=False, index=True)
    from_user_id = db.Column(db.String(64), nullable=False)
    to_user_id = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=RequestStatus.PENDING.value)
    created_match_id = db.Column(
        db.Integer, db.ForeignKey('match.id', name='fk_rematch_created_match_id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    match = db.relationship('Match', foreign_keys=[match_id], back_populates='rematch_requests')


class Friendship(db.Model):
    __tablename__ = 'friendship'
    __table_args__ = (db.UniqueConstraint('user_id', 'friend_id', name='uq_friendship_pair'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    friend_id = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=FriendStatus.PENDING.value)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)


class Notification(db.Model):
    __tablename__ = 'notification'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=True)
    data = db.Column(db.JSON, nullable=False, default=dict)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
