"""Domain errors raised by the assignment services.

Each class names one failure kind the HTTP layer reports to callers as
`{"detail": ..., "kind": ...}` with the class's status code. They derive
from `ValueError` so callers that only care about "bad request" can keep
catching that.
"""


class AssignmentError(ValueError):
    kind = "assignment_error"
    status_code = 400
    default_message = "assignment request failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFound(AssignmentError):
    kind = "not_found"
    status_code = 404
    default_message = "assignment not found"


class Inactive(AssignmentError):
    kind = "inactive"
    status_code = 403
    default_message = "assignment is not active"


class WindowExpired(AssignmentError):
    kind = "expired"
    status_code = 400
    default_message = "assignment is no longer available"


class MissingAttemptStart(AssignmentError):
    kind = "missing_attempt_start"
    status_code = 400
    default_message = "startedAt is required for time-limited assignments"


class TimeLimitExceeded(AssignmentError):
    kind = "time_limit_exceeded"
    status_code = 400
    default_message = "time limit exceeded"


class AudienceRestricted(AssignmentError):
    kind = "audience_restricted"
    status_code = 403
    default_message = "assignment is restricted to selected students"


class ValidationError(AssignmentError):
    kind = "validation_error"
    status_code = 400
    default_message = "invalid request"


class PersistenceError(AssignmentError):
    kind = "persistence_error"
    status_code = 500
    default_message = "could not store the submission"
