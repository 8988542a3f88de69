from typing import List, Optional

from flask import current_app
from sqlalchemy import func, select, update

from palindrome.errors import InvalidRequestError, NotFoundError
from palindrome.models import Notification, utcnow
from palindrome.schemas import NotificationSchema, NotificationType

DEFAULT_LIMIT = 50


class NotificationService:
    """In-app inbox: friend requests, challenges and app updates.

    ``add`` stages an entry in the caller's transaction so the friend request
    or challenge and its inbox entry commit together.
    """

    def __init__(self, session, logger=None):
        self.session = session
        self.logger = logger or current_app.logger

    def add(self, user_id: str, type: NotificationType, title: str, body: Optional[str] = None,
            data: Optional[dict] = None) -> Notification:
        row = Notification(user_id=user_id, type=NotificationType(type).value, title=title, body=body,
                           data=dict(data or {}), created_at=utcnow())
        self.session.add(row)
        self.session.flush()
        return row

    def create_notification(self, user_id: str, type: NotificationType, title: str,
                            body: Optional[str] = None, data: Optional[dict] = None) -> NotificationSchema:
        if not user_id or not title:
            raise InvalidRequestError('user_id and title are required')
        if type not in [t.value for t in NotificationType]:
            raise InvalidRequestError(f'Unknown notification type {type!r}')
        row = self.add(user_id, type, title, body, data)
        self.session.commit()
        self.logger.info(f"[notification] id={row.id} user={user_id} type={row.type}")
        return NotificationSchema.model_validate(row)

    def get_notifications(self, user_id: str, limit: int = DEFAULT_LIMIT,
                          unread_only: bool = False) -> List[NotificationSchema]:
        """Newest first."""
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read_at.is_(None))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        return [NotificationSchema.model_validate(n) for n in self.session.execute(stmt).scalars()]

    def get_unread_count(self, user_id: str) -> int:
        return self.session.execute(
            select(func.count(Notification.id))
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        ).scalar_one()

    def mark_as_read(self, notification_id: int, user_id: str) -> NotificationSchema:
        row = self.session.get(Notification, notification_id)
        # Someone else's entry is reported the same as a missing one
        if row is None or row.user_id != user_id:
            raise NotFoundError('Notification not found')
        if row.read_at is None:
            row.read_at = utcnow()
            self.session.commit()
        return NotificationSchema.model_validate(row)

    def mark_all_as_read(self, user_id: str) -> int:
        updated = self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
            .values(read_at=utcnow())
        ).rowcount
        self.session.commit()
        return updated
