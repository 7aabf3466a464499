"""
Error types shared by the stream rooms and the device pairing registry.

Every error carries the HTTP status it maps to; none of them terminates a
partition actor.
"""


class PetubeError(Exception):
    """Base class for errors recovered at the request/message boundary."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(PetubeError):
    """Missing, invalid or expired bearer token."""
    status_code = 401


class ValidationError(PetubeError):
    """Malformed message or request body."""
    status_code = 400


class ConflictError(PetubeError):
    """A second publisher tried to join a room."""
    status_code = 409


class NotFoundError(PetubeError):
    """Unknown device, group or session, or not owned by the caller."""
    status_code = 404


class ExpiredError(NotFoundError):
    """Pairing session used after its TTL. Callers see it as NotFound."""

    def __init__(self, message: str = "Pairing session has expired"):
        super().__init__(message)
