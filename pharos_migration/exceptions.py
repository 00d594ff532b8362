"""Exceptions raised by the migration pipeline."""

from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base class for all migration failures."""


class DestinationError(MigrationError):
    """The destination rejected a write or a listing call."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None
    ):
        super().__init__(message)
        self.identifier = identifier
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "error": str(self),
            "identifier": self.identifier,
            "status_code": self.status_code,
            "body": self.body,
        }


class MissingReferenceError(MigrationError):
    """A foreign reference could not be resolved through the identifier map."""

    def __init__(self, entity: str, field: str, reference: Optional[str]):
        super().__init__(f"{entity}: no new id for {field} {reference!r}")
        self.entity = entity
        self.field = field
        self.reference = reference


class IdentifierConflictError(MigrationError):
    """An identifier map key was set twice with different values."""


class UnknownEventTypeError(MigrationError):
    """A legacy PREMIS event type has no translation."""

    def __init__(self, event_type: Optional[str], identifier: Optional[str] = None):
        super().__init__(f"Unknown event type {event_type!r} on event {identifier}")
        self.event_type = event_type
        self.identifier = identifier


class SourceDataError(MigrationError):
    """A source record is missing data the migration cannot do without."""
