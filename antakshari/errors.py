"""
Antakshari Round Shuffler - Domain Errors

Services raise these; the route layer maps them onto HTTP status codes.
"""


class ShufflerError(Exception):
    """Base class for every expected, request-local failure."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or "")
        self.message = message or (self.__class__.__doc__ or "").strip()


class LockedError(ShufflerError):
    """Shuffle is locked by the host."""

    status_code = 403


class ForbiddenError(ShufflerError):
    """Only the host can do that."""

    status_code = 403


class ConflictError(ShufflerError):
    """Resource already exists."""

    status_code = 409


class NotFoundError(ShufflerError):
    """Resource not found."""

    status_code = 404


class ValidationError(ShufflerError):
    """Invalid input."""

    status_code = 400


class MediaHostError(ShufflerError):
    """Media host request failed."""

    status_code = 502
