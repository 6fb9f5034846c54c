"""Error taxonomy for the trust engine.

Each class maps to one HTTP outcome in the global exception handler:

- ValidationError: malformed or missing input (400)
- AuthenticationRequired: no actor on a protected operation (401)
- AuthorizationError / SubmissionBlocked: wrong actor or blocked account (403)
- NotFoundError: referenced entity does not exist (404)
- StateConflict / InvalidTransition: the world changed under the caller (409)
- UpstreamSignalError: AI risk adapter failure, recovered locally
- PersistenceError: storage failure, surfaced as a generic 500
"""


class GigTrustError(Exception):
    """Base class carrying a user-facing message and optional details."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(GigTrustError, ValueError):
    pass


class AuthenticationRequired(GigTrustError, PermissionError):
    pass


class AuthorizationError(GigTrustError, PermissionError):
    pass


class SubmissionBlocked(AuthorizationError):
    """Permanent block on report submission until external state changes."""


class NotFoundError(GigTrustError, LookupError):
    pass


class StateConflict(GigTrustError):
    pass


class InvalidTransition(StateConflict):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Invalid status transition from {current} to {target}",
            details={"current_status": current, "requested_status": target},
        )
        self.current = current
        self.target = target


class UpstreamSignalError(GigTrustError):
    pass


class PersistenceError(GigTrustError):
    pass
