# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain errors raised by the service layer.

Every error is terminal for the request that raised it: nothing retries
internally. ``NotFound`` covers both "does not exist" and
"not visible to the caller" so callers cannot probe for other teachers'
classes.
"""


class ColdCallError(Exception):
    """Base class; ``code`` and ``status_code`` drive the HTTP error body."""

    code: str = "error"
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class NotFound(ColdCallError, KeyError):
    code = "NotFound"
    status_code = 404
    default_message = "Not found"


class EmptyRoster(ColdCallError, ValueError):
    code = "EmptyRoster"
    status_code = 409
    default_message = "No students in this class"


class InvalidScore(ColdCallError, ValueError):
    code = "InvalidScore"
    status_code = 422
    default_message = "Score must be an integer between -2 and 2, or null"


# Plain ValueErrors: each endpoint picks its own status for these.

class DuplicateUni(ValueError):
    """A UNI that is already on the class roster (or repeated in one batch)."""


class DuplicateEmail(ValueError):
    pass
