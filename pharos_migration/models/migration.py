"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import json
import os
import uuid


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    LOADING_INSTITUTIONS = "loading_institutions"
    IMPORTING_OBJECTS = "importing_objects"
    IMPORTING_WORK_ITEMS = "importing_work_items"
    COMPLETED = "completed"
    FAILED = "failed"


class DestinationType(str, Enum):
    """Where migrated records are written."""
    API = "api"  # Pharos REST API
    SQL = "sql"  # Pharos SQLite database file


@dataclass
class MigrationStep:
    """A single phase of a migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    entity: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    records_processed: int = 0
    records_succeeded: int = 0
    records_failed: int = 0
    records_skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "entity": self.entity,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "records_processed": self.records_processed,
            "records_succeeded": self.records_succeeded,
            "records_failed": self.records_failed,
            "records_skipped": self.records_skipped,
            "errors": self.errors,
            "warnings": self.warnings,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class MigrationRun:
    """A complete migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    destination: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    limit: Optional[int] = None
    offset: Optional[int] = None

    # Timing
    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Progress
    steps: List[MigrationStep] = field(default_factory=list)
    current_step: Optional[str] = None

    # Statistics
    total_records_processed: int = 0
    total_records_succeeded: int = 0
    total_records_failed: int = 0
    total_records_skipped: int = 0

    errors: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "destination": self.destination,
            "status": self.status.value,
            "limit": self.limit,
            "offset": self.offset,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "steps": [s.to_dict() for s in self.steps],
            "current_step": self.current_step,
            "total_records_processed": self.total_records_processed,
            "total_records_succeeded": self.total_records_succeeded,
            "total_records_failed": self.total_records_failed,
            "total_records_skipped": self.total_records_skipped,
            "errors": self.errors,
            "metadata": self.metadata,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def add_step(self, name: str, entity: str) -> MigrationStep:
        """Add a new step to the migration."""
        step = MigrationStep(name=name, entity=entity)
        self.steps.append(step)
        return step

    def update_totals(self) -> None:
        """Update total statistics from steps."""
        self.total_records_processed = sum(s.records_processed for s in self.steps)
        self.total_records_succeeded = sum(s.records_succeeded for s in self.steps)
        self.total_records_failed = sum(s.records_failed for s in self.steps)
        self.total_records_skipped = sum(s.records_skipped for s in self.steps)


@dataclass
class MigrationConfig:
    """Configuration for a migration."""
    destination: DestinationType = DestinationType.SQL
    source_path: str = "fedora_export.db"

    # REST destination
    api_key: Optional[str] = None
    api_user: str = "system@aptrust.org"
    base_url: str = "http://localhost:3000"
    verify_ssl: bool = False
    timeout: Optional[float] = None

    # SQL destination
    dest_path: Optional[str] = None
    empty_dest_path: Optional[str] = None  # Template db copied to dest_path

    # Subset selection, for test runs
    limit: Optional[int] = None
    offset: Optional[int] = None

    # Execution options
    batch_size: int = 100
    strict_references: bool = False
    strict_event_types: bool = True
    create_indexes: bool = True
    import_users: bool = True

    # Output
    output_dir: str = "."
    log_file: str = "import.log"
    save_report: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation. The API key is never included."""
        return {
            "destination": self.destination.value,
            "source_path": self.source_path,
            "api_user": self.api_user,
            "base_url": self.base_url,
            "verify_ssl": self.verify_ssl,
            "timeout": self.timeout,
            "dest_path": self.dest_path,
            "empty_dest_path": self.empty_dest_path,
            "limit": self.limit,
            "offset": self.offset,
            "batch_size": self.batch_size,
            "strict_references": self.strict_references,
            "strict_event_types": self.strict_event_types,
            "create_indexes": self.create_indexes,
            "import_users": self.import_users,
            "output_dir": self.output_dir,
            "log_file": self.log_file,
            "save_report": self.save_report,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation, falling back to environment variables."""
        return cls(
            destination=DestinationType(data.get("destination", "sql")),
            source_path=data.get("source_path", "fedora_export.db"),
            api_key=data.get("api_key") or os.environ.get("PHAROS_API_KEY"),
            api_user=data.get("api_user", "system@aptrust.org"),
            base_url=data.get("base_url") or os.environ.get("PHAROS_BASE_URL", "http://localhost:3000"),
            verify_ssl=data.get("verify_ssl", False),
            timeout=data.get("timeout"),
            dest_path=data.get("dest_path"),
            empty_dest_path=data.get("empty_dest_path"),
            limit=data.get("limit"),
            offset=data.get("offset"),
            batch_size=data.get("batch_size", 100),
            strict_references=data.get("strict_references", False),
            strict_event_types=data.get("strict_event_types", True),
            create_indexes=data.get("create_indexes", True),
            import_users=data.get("import_users", True),
            output_dir=data.get("output_dir", "."),
            log_file=data.get("log_file", "import.log"),
            save_report=data.get("save_report", True),
        )

    @classmethod
    def from_json_file(cls, path: str) -> "MigrationConfig":
        """Load configuration from a JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def validate(self) -> List[str]:
        """
        Check the configuration for the chosen destination.

        Returns:
            List of validation error messages
        """
        errors = []

        if self.destination == DestinationType.API:
            if not self.api_key:
                errors.append("An API key is required for the api destination")
            if not self.base_url:
                errors.append("A base URL is required for the api destination")
        elif not self.dest_path:
            errors.append("A destination database path is required for the sql destination")

        if self.batch_size < 1:
            errors.append("batch_size must be at least 1")
        if self.limit is not None and self.limit < 0:
            errors.append("limit must not be negative")
        if self.offset is not None and self.offset < 0:
            errors.append("offset must not be negative")

        return errors
