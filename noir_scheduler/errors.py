"""
Error taxonomy for the scheduling core.

"No capacity" is not an error: assignment and search return None for it.
"""
from typing import Dict, Type

STATUS_BAD_REQUEST = 400
STATUS_CONFLICT = 409
STATUS_SERVICE_UNAVAILABLE = 503
STATUS_INTERNAL_ERROR = 500


class SchedulerError(Exception):
    """Base class for every error raised by noir_scheduler."""


class InvalidRequest(SchedulerError):
    """Missing or malformed input: bad date, party size <= 0, end <= start."""


class StorageUnavailable(SchedulerError):
    """The row store could not be reached or answered with an error."""


class ConstraintViolation(SchedulerError):
    """The row store rejected a write because of a constraint."""


class RaceLost(SchedulerError):
    """The pre-insert re-check found a conflict that appeared after assignment."""


# First match wins, so subclasses go before their bases.
ERROR_STATUS: Dict[Type[SchedulerError], int] = {
    InvalidRequest: STATUS_BAD_REQUEST,
    RaceLost: STATUS_CONFLICT,
    ConstraintViolation: STATUS_CONFLICT,
    StorageUnavailable: STATUS_SERVICE_UNAVAILABLE,
}


def http_status_for(exc: Exception) -> int:
    """Maps an exception raised by the core to the HTTP status a handler should answer with."""
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return STATUS_INTERNAL_ERROR
