from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INVITE_CODE_LENGTH = 6


# --- Enums (strict vocabulary shared by models, services and the API) ---

class MatchStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class FriendStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class NotificationType(str, Enum):
    FRIEND_REQUEST = "friend_request"
    CHALLENGE = "challenge"
    APP_UPDATE = "app_update"


# --- Records, validated on every read from the store ---

class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class MatchPlayerSchema(_Record):
    id: int
    match_id: int
    user_id: str
    score: Optional[int] = None
    submitted_at: Optional[datetime] = None
    is_winner: Optional[bool] = None


class ChallengeSchema(_Record):
    id: int
    from_user_id: str
    to_user_id: str
    match_id: int
    status: RequestStatus
    created_at: datetime


class RematchRequestSchema(_Record):
    id: int
    match_id: int
    from_user_id: str
    to_user_id: str
    status: RequestStatus
    created_match_id: Optional[int] = None
    created_at: datetime


class MatchSchema(_Record):
    """Everything a client can observe about one match.

    The linked challenge and the rematch requests ride along so a single
    refetch tells a waiting client about declines and new rematch matches.
    """
    id: int
    created_at: datetime
    status: MatchStatus
    mode: str
    seed: str
    invite_code: Optional[str] = None
    time_limit_seconds: int
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    players: List[MatchPlayerSchema] = Field(default_factory=list)
    challenge: Optional[ChallengeSchema] = None
    rematch_requests: List[RematchRequestSchema] = Field(default_factory=list)

    @field_validator('invite_code')
    def check_invite_code(cls, v):
        if v is not None and (len(v) != INVITE_CODE_LENGTH or not v.isalnum()):
            raise ValueError(f'invite code must be {INVITE_CODE_LENGTH} alphanumeric characters')
        return v

    @field_validator('players')
    def check_player_limit(cls, v):
        if len(v) > 2:
            raise ValueError('a match holds at most two players')
        return v

    def player(self, user_id: str) -> Optional[MatchPlayerSchema]:
        return next((p for p in self.players if p.user_id == user_id), None)

    def opponent(self, user_id: str) -> Optional[MatchPlayerSchema]:
        return next((p for p in self.players if p.user_id != user_id), None)


class FriendshipSchema(_Record):
    id: int
    user_id: str
    friend_id: str
    status: FriendStatus
    created_at: datetime


class HeadToHeadSchema(BaseModel):
    total_matches: int = 0
    my_wins: int = 0
    their_wins: int = 0


class RematchOutcome(BaseModel):
    """Result of a rematch request.

    ``requested``: the caller now waits for the opponent.
    ``accepted``: a new match exists and ``match`` holds it.
    """
    action: Literal["requested", "accepted"]
    request: RematchRequestSchema
    match: Optional[MatchSchema] = None


class NotificationSchema(_Record):
    id: int
    user_id: str
    type: NotificationType
    title: str
    body: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    read_at: Optional[datetime] = None
    created_at: datetime
