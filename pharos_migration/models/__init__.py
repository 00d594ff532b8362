"""Data models for the migration application."""

from .identifier_map import IdentifierMap
from .migration import (
    MigrationConfig,
    MigrationRun,
    MigrationStep,
    MigrationStatus,
    DestinationType,
)
from .records import (
    Access,
    PharosRecord,
    Institution,
    User,
    IntellectualObject,
    GenericFile,
    Checksum,
    PremisEvent,
    WorkItem,
    WorkItemState,
)

__all__ = [
    "IdentifierMap",
    "MigrationConfig",
    "MigrationRun",
    "MigrationStep",
    "MigrationStatus",
    "DestinationType",
    "Access",
    "PharosRecord",
    "Institution",
    "User",
    "IntellectualObject",
    "GenericFile",
    "Checksum",
    "PremisEvent",
    "WorkItem",
    "WorkItemState",
]
