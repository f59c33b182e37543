"""Domain errors raised by the School API services.

Every rejected operation raises exactly one of these. Each class carries
the HTTP status the transport layer answers with; the services
themselves never look at it.
"""

from typing import Any, Dict, Optional


class SchoolError(Exception):
    """Base class for all recoverable domain errors."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MissingFieldError(SchoolError):
    """A required field is absent on create."""


class InvalidFieldError(SchoolError):
    """A supplied field has the wrong type or an out-of-range value."""


class EmptyUpdateError(SchoolError):
    """An update payload carries no recognized field."""


class InvalidReferenceError(SchoolError):
    """A foreign-key field does not resolve to an existing record."""


class NotFoundError(SchoolError):
    """The target record does not exist."""
    status_code = 404


class ConflictError(SchoolError):
    """A delete is blocked by dependents, or a concurrent write was detected."""
    status_code = 409


class NoDataError(SchoolError):
    """An average was requested over an empty set of tests."""
    status_code = 404
