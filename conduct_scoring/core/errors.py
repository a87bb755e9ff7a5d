# conduct_scoring/core/errors.py


class ScoringError(Exception):
    """Base class for every rule violation raised by the scoring core."""


class InvalidStateError(ScoringError):
    """Operation attempted from a status that forbids it."""


class StaleRecordError(InvalidStateError):
    """The record changed underneath the caller (version mismatch)."""


class OutOfRangeError(ScoringError):
    pass


class ValidationError(ScoringError):
    """Required input missing, empty or of the wrong shape."""


class PermissionDeniedError(ScoringError):
    pass
