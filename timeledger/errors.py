"""Error taxonomy raised by the time tracking services.

All errors subclass ``ValueError`` so callers that only care about
"bad request vs. everything else" can keep catching ``ValueError``.
The HTTP layer maps each class to a status code in ``timeledger.main``.
"""


class TimeTrackingError(ValueError):
    """Base class for time tracking errors."""

    status_code = 400


class NotFoundError(TimeTrackingError):
    """Entry or task does not exist, is not owned by the caller, or is not running."""

    status_code = 404


class EntryValidationError(TimeTrackingError):
    """Malformed or contradictory input."""

    status_code = 400


class ConflictError(TimeTrackingError):
    """A second running timer would have been created for the same user."""

    status_code = 409


class StoreError(TimeTrackingError):
    """Storage failure unrelated to caller input."""

    status_code = 500
