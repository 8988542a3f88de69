from typing import List, Optional

from flask import current_app
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError

from palindrome.errors import ConflictError, InvalidRequestError, NotFoundError, NotParticipantError, StaleStateError
from palindrome.models import Friendship, utcnow
from palindrome.schemas import FriendshipSchema, FriendStatus, NotificationType
from .notifications import NotificationService

DUPLICATE_REQUEST = 'Friend request already sent or already friends'


def _between(user_id: str, other_id: str):
    return or_(
        and_(Friendship.user_id == user_id, Friendship.friend_id == other_id),
        and_(Friendship.user_id == other_id, Friendship.friend_id == user_id),
    )


class FriendService:
    """Friend requests and the friendship check challenges depend on."""

    def __init__(self, session, logger=None, notifications=None):
        self.session = session
        self.logger = logger or current_app.logger
        self.notifications = notifications or NotificationService(session, self.logger)

    def send_request(self, user_id: str, friend_id: str) -> FriendshipSchema:
        if not user_id or not friend_id:
            raise InvalidRequestError('user_id and friend_id are required')
        if user_id == friend_id:
            raise InvalidRequestError('Cannot add yourself')
        existing = self.session.execute(select(Friendship.id).where(_between(user_id, friend_id))).first()
        if existing:
            raise ConflictError(DUPLICATE_REQUEST)

        row = Friendship(user_id=user_id, friend_id=friend_id,
                         status=FriendStatus.PENDING.value, created_at=utcnow())
        self.session.add(row)
        try:
            self.session.flush()
            self.notifications.add(friend_id, NotificationType.FRIEND_REQUEST, f"{user_id} wants to be your friend",
                                   data={'friend_request_id': row.id, 'from_user_id': user_id})
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError(DUPLICATE_REQUEST)
        self.logger.info(f"[friend-request] from={user_id} to={friend_id}")
        return FriendshipSchema.model_validate(row)

    def _pending_for(self, request_id: int, user_id: str) -> Friendship:
        row = self.session.get(Friendship, request_id)
        if row is None:
            raise NotFoundError('Friend request not found')
        if row.friend_id != user_id:
            raise NotParticipantError('This friend request is not addressed to you')
        if row.status != FriendStatus.PENDING.value:
            raise StaleStateError('Friend request already handled')
        return row

    def accept_request(self, request_id: int, user_id: str) -> FriendshipSchema:
        row = self._pending_for(request_id, user_id)
        row.status = FriendStatus.ACCEPTED.value
        self.session.commit()
        return FriendshipSchema.model_validate(row)

    def decline_request(self, request_id: int, user_id: str) -> None:
        row = self._pending_for(request_id, user_id)
        self.session.delete(row)
        self.session.commit()

    def get_friends(self, user_id: str) -> List[FriendshipSchema]:
        rows = self.session.execute(
            select(Friendship)
            .where(
                Friendship.status == FriendStatus.ACCEPTED.value,
                or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
            )
            .order_by(Friendship.id)
        ).scalars()
        return [FriendshipSchema.model_validate(r) for r in rows]

    def get_pending_requests(self, user_id: str) -> List[FriendshipSchema]:
        rows = self.session.execute(
            select(Friendship)
            .where(Friendship.friend_id == user_id, Friendship.status == FriendStatus.PENDING.value)
            .order_by(Friendship.created_at.desc())
        ).scalars()
        return [FriendshipSchema.model_validate(r) for r in rows]

    def are_friends(self, user_id: str, other_id: str) -> bool:
        row = self.session.execute(
            select(Friendship.id).where(
                _between(user_id, other_id), Friendship.status == FriendStatus.ACCEPTED.value)
        ).first()
        return row is not None

    def get_status(self, user_id: str, other_id: str) -> Optional[str]:
        """'friends', 'pending' (we asked), 'received' (they asked) or None."""
        row = self.session.execute(select(Friendship).where(_between(user_id, other_id))).scalars().first()
        if row is None:
            return None
        if row.status == FriendStatus.ACCEPTED.value:
            return 'friends'
        return 'pending' if row.user_id == user_id else 'received'
