"""Match domain services: lifecycle, challenges, friends, rematches
and the notification inbox.

This package contains the domain logic that HTTP routes and socket
handlers call into, keeping transport concerns separated from match
coordination. Every service takes its database session (and optionally a
notifier) in its constructor.
"""

from .lifecycle import MatchLifecycle
from .challenges import ChallengeService
from .friends import FriendService
from .rematch import RematchProtocol
from .notifications import NotificationService

__all__ = ['MatchLifecycle', 'ChallengeService', 'FriendService', 'RematchProtocol', 'NotificationService']
