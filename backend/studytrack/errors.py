"""Exception types raised by the study tracker services.

Services raise these instead of HTTP errors; `main` maps them onto JSON
responses using `status_code` and `error_code`.
"""

from typing import Optional


class StudyTrackError(Exception):
    """Base class for domain errors with an HTTP mapping."""

    status_code: int = 500
    error_code: str = "study_track_error"

    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code


class ValidationError(StudyTrackError, ValueError):
    """Rejected input. No state was mutated."""

    status_code = 400
    error_code = "validation_error"


class NotFoundError(StudyTrackError):
    """A referenced entity does not exist or belongs to another user."""

    status_code = 404
    error_code = "not_found"


class ConflictError(StudyTrackError):
    """The write would violate a uniqueness rule."""

    status_code = 409
    error_code = "conflict"


class StorageError(StudyTrackError):
    """A durability failure in the underlying store.

    Never retried silently; the request fails with a generic message.
    """

    status_code = 500
    error_code = "storage_error"


class UpstreamError(StudyTrackError):
    """The external insight generator failed or returned unusable output."""

    status_code = 502
    error_code = "upstream_error"
