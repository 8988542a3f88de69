"""Domain errors raised by the match services.

Each error carries the HTTP status the API answers with and a short
``kind`` that survives the trip through JSON, so ``MatchClient`` can raise
the same class on the other side.
"""


class MatchError(Exception):
    status_code = 400
    kind = 'error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


class InvalidRequestError(MatchError):
    status_code = 400
    kind = 'validation'


class NotParticipantError(MatchError):
    status_code = 403
    kind = 'not_participant'


class NotFoundError(MatchError):
    status_code = 404
    kind = 'not_found'


class ConflictError(MatchError):
    status_code = 409
    kind = 'conflict'


class StaleStateError(MatchError):
    status_code = 409
    kind = 'stale'


ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (InvalidRequestError, NotParticipantError, NotFoundError, ConflictError, StaleStateError)
}
