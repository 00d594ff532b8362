"""Pydantic models for records written to Pharos."""

import secrets
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Institutions carried no timestamps in Fedora.
DEFAULT_INSTITUTION_TIMESTAMP = "2015-01-01T00:00:00Z"


class Access(str, Enum):
    RESTRICTED = "restricted"
    INSTITUTION = "institution"
    CONSORTIA = "consortia"


class PharosRecord(BaseModel):
    """
    Base for destination records.

    Records are frozen once built. ``COLUMNS`` lists the destination table
    columns in INSERT order; ``API_EXCLUDE`` names fields the REST API does
    not accept.
    """
    model_config = ConfigDict(frozen=True)

    TABLE: ClassVar[str] = ""
    COLUMNS: ClassVar[Tuple[str, ...]] = ()
    API_EXCLUDE: ClassVar[Tuple[str, ...]] = ()

    def to_row(self) -> Tuple[Any, ...]:
        """SQL parameters in ``COLUMNS`` order."""
        data = self.model_dump(mode="json")
        return tuple(data.get(column) for column in self.COLUMNS)

    def to_api(self) -> Dict[str, Any]:
        """JSON payload for the REST API."""
        return self.model_dump(mode="json", exclude=set(self.API_EXCLUDE))

    @classmethod
    def insert_statement(cls) -> str:
        columns = ", ".join(cls.COLUMNS)
        placeholders = ",".join("?" for _ in cls.COLUMNS)
        return f"INSERT INTO {cls.TABLE} ({columns}) VALUES ({placeholders})"


class Institution(PharosRecord):
    TABLE: ClassVar[str] = "institutions"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "name", "brief_name", "identifier", "dpn_uuid", "state",
        "created_at", "updated_at",
    )

    name: str
    brief_name: Optional[str] = None
    identifier: str
    dpn_uuid: Optional[str] = None
    state: str = "A"
    created_at: str = DEFAULT_INSTITUTION_TIMESTAMP
    updated_at: str = DEFAULT_INSTITUTION_TIMESTAMP


class User(PharosRecord):
    TABLE: ClassVar[str] = "users"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "name", "email", "phone_number", "created_at", "updated_at",
        "encrypted_password", "reset_password_token", "remember_created_at",
        "sign_in_count", "current_sign_in_at", "last_sign_in_at",
        "current_sign_in_ip", "last_sign_in_ip", "institution_id",
        "encrypted_api_secret_key",
    )

    name: Optional[str] = None
    email: str
    phone_number: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    encrypted_password: Optional[str] = None
    reset_password_token: Optional[str] = None
    remember_created_at: Optional[str] = None
    sign_in_count: Optional[int] = None
    current_sign_in_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None
    current_sign_in_ip: Optional[str] = None
    last_sign_in_ip: Optional[str] = None
    institution_id: Optional[int] = None
    encrypted_api_secret_key: Optional[str] = None

    @field_validator("reset_password_token")
    @classmethod
    def _token_required(cls, value: Optional[str]) -> str:
        # Pharos has a unique index on this column, so blanks collide.
        if value is None or not value.strip():
            return secrets.token_hex(64)
        return value


class IntellectualObject(PharosRecord):
    TABLE: ClassVar[str] = "intellectual_objects"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "title", "description", "identifier", "alt_identifier", "access",
        "bag_name", "institution_id", "state", "etag", "dpn_uuid",
        "created_at", "updated_at",
    )
    FORM_FIELDS: ClassVar[Tuple[str, ...]] = (
        "identifier", "title", "description", "alt_identifier", "access",
        "bag_name", "state", "institution_id", "etag", "created_at",
        "dpn_uuid",
    )

    identifier: str
    title: Optional[str] = None
    description: Optional[str] = None
    alt_identifier: Optional[str] = None
    access: Access
    bag_name: Optional[str] = None
    state: Optional[str] = None
    institution_id: Optional[int] = None
    etag: Optional[str] = None
    dpn_uuid: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("access", mode="before")
    @classmethod
    def _normalize_access(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def to_form(self) -> Dict[str, Any]:
        """Form-encoded payload for the objects endpoint. None values are dropped."""
        data = self.model_dump(mode="json")
        return {
            f"intellectual_object[{name}]": data[name]
            for name in self.FORM_FIELDS
            if data[name] is not None
        }


class Checksum(PharosRecord):
    TABLE: ClassVar[str] = "checksums"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "algorithm", "datetime", "digest", "generic_file_id",
        "created_at", "updated_at",
    )
    API_EXCLUDE: ClassVar[Tuple[str, ...]] = ("generic_file_id",)

    algorithm: str
    digest: str
    datetime: Optional[str] = None
    generic_file_id: Optional[int] = None

    def to_row(self) -> Tuple[Any, ...]:
        # created_at and updated_at both take the checksum's own timestamp.
        return (self.algorithm, self.datetime, self.digest, self.generic_file_id,
                self.datetime, self.datetime)


class PremisEvent(PharosRecord):
    TABLE: ClassVar[str] = "premis_events"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "identifier", "event_type", "date_time", "outcome_detail", "detail",
        "outcome_information", "object", "agent", "intellectual_object_id",
        "generic_file_id", "institution_id", "outcome",
        "intellectual_object_identifier", "generic_file_identifier",
        "old_uuid", "created_at", "updated_at",
    )

    identifier: Optional[str] = None
    event_type: str
    date_time: Optional[str] = None
    detail: Optional[str] = None
    outcome: Optional[str] = None
    outcome_detail: Optional[str] = None
    outcome_information: Optional[str] = None
    object: Optional[str] = None
    agent: Optional[str] = None
    intellectual_object_id: Optional[int] = None
    generic_file_id: Optional[int] = None
    institution_id: Optional[int] = None
    intellectual_object_identifier: Optional[str] = None
    generic_file_identifier: Optional[str] = None

    def to_row(self) -> Tuple[Any, ...]:
        data = self.model_dump(mode="json")
        data["old_uuid"] = None
        data["created_at"] = self.date_time
        data["updated_at"] = self.date_time
        return tuple(data.get(column) for column in self.COLUMNS)


class GenericFile(PharosRecord):
    TABLE: ClassVar[str] = "generic_files"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "file_format", "uri", "size", "identifier", "intellectual_object_id",
        "permissions", "state", "created_at", "updated_at",
    )

    identifier: str
    file_format: Optional[str] = None
    uri: Optional[str] = None
    size: Optional[int] = None
    intellectual_object_id: int
    state: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    checksums: List[Checksum] = Field(default_factory=list)
    premis_events: List[PremisEvent] = Field(default_factory=list)

    def to_row(self) -> Tuple[Any, ...]:
        return (self.file_format, self.uri, self.size, self.identifier,
                self.intellectual_object_id, None, self.state,
                self.created_at, self.updated_at)

    def to_api(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"checksums", "premis_events"})
        data["checksums_attributes"] = [c.to_api() for c in self.checksums]
        data["premis_events_attributes"] = [e.to_api() for e in self.premis_events]
        return data


class WorkItem(PharosRecord):
    TABLE: ClassVar[str] = "work_items"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "intellectual_object_id", "generic_file_id", "name", "etag", "bucket",
        "user", "note", "action", "stage", "status", "outcome", "bag_date",
        "date", "retry", "object_identifier", "generic_file_identifier",
        "node", "pid", "needs_admin_review", "institution_id", "queued_at",
        "size", "stage_started_at", "created_at", "updated_at",
    )

    intellectual_object_id: Optional[int] = None
    generic_file_id: Optional[int] = None
    name: Optional[str] = None
    etag: Optional[str] = None
    bucket: Optional[str] = None
    user: Optional[str] = None
    note: Optional[str] = None
    action: Optional[str] = None
    stage: Optional[str] = None
    status: Optional[str] = None
    outcome: Optional[str] = None
    bag_date: Optional[str] = None
    date: Optional[str] = None
    retry: Optional[bool] = None
    object_identifier: Optional[str] = None
    generic_file_identifier: Optional[str] = None
    node: Optional[str] = None
    pid: Optional[int] = None
    needs_admin_review: Optional[bool] = None
    institution_id: Optional[int] = None
    queued_at: Optional[str] = None
    size: Optional[int] = None
    stage_started_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class WorkItemState(PharosRecord):
    TABLE: ClassVar[str] = "work_item_states"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "work_item_id", "action", "state", "created_at", "updated_at",
    )
    API_EXCLUDE: ClassVar[Tuple[str, ...]] = ("created_at", "updated_at")

    work_item_id: int
    action: Optional[str] = None
    state: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
