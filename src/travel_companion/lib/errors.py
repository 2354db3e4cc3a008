"""Error taxonomy for travel-companion.

Each error carries the HTTP status the history service answers with.
"""

from __future__ import annotations


class TravelCompanionError(Exception):
    """Base class for all travel-companion errors."""

    status_code = 500


class ValidationError(TravelCompanionError, ValueError):
    """A write request is missing a required field or carries a bad value."""

    status_code = 400


class NotFoundError(TravelCompanionError, LookupError):
    """No location record exists with the requested id."""

    status_code = 404


class StorageError(TravelCompanionError):
    """The backing store could not be read or the rewrite could not be committed."""

    status_code = 500


class ApiError(TravelCompanionError):
    """A call to the history service failed.

    ``status`` is the HTTP status code, or None when the service could not be
    reached at all.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
