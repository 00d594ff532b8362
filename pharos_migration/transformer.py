"""Builds Pharos records from legacy export rows."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError

from .events import capitalize_first, translate_event_type, work_item_institution
from .exceptions import MissingReferenceError, SourceDataError, UnknownEventTypeError
from .extractors import queries
from .extractors.base import SourceStore
from .loaders.base import BaseLoader
from .models.identifier_map import IdentifierMap
from .models.migration import MigrationConfig, MigrationStep
from .models.records import (
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

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
R = TypeVar("R", bound=PharosRecord)


@dataclass
class MigrationContext:
    """
    Everything one phase needs: the source handle, the destination, the
    identifier map built so far and the step being counted.
    """
    config: MigrationConfig
    store: SourceStore
    loader: BaseLoader
    id_map: IdentifierMap = field(default_factory=IdentifierMap)
    step: Optional[MigrationStep] = None

    def _missing(self, entity: str, field_name: str, reference: Any, required: bool) -> None:
        if required or self.config.strict_references:
            raise MissingReferenceError(entity, field_name, reference)
        message = f"{entity}: no new id for {field_name} {reference!r}, writing null"
        logger.warning(message)
        if self.step is not None:
            self.step.warnings.append(message)

    def resolve(self, entity: str, field_name: str, old_id: Optional[str], required: bool = False) -> Optional[int]:
        """
        Look up the new id of a legacy pid.

        An empty reference resolves to None without complaint unless
        required. An unresolved one is an error when required or in strict
        mode, and a logged warning otherwise.
        """
        new_id = self.id_map.get(old_id) if old_id else None
        if new_id is None and (old_id or required):
            self._missing(entity, field_name, old_id, required)
        return new_id

    def resolve_name(self, entity: str, field_name: str, name: Optional[str]) -> Optional[int]:
        """Look up the new id of an institution, object or file identifier."""
        new_id = self.id_map.get_by_name(name) if name else None
        if new_id is None and name:
            self._missing(entity, field_name, name, False)
        return new_id


def _build(model: Type[R], what: str, ref: Any, /, **values: Any) -> R:
    try:
        return model(**values)
    except ValidationError as e:
        raise SourceDataError(f"Invalid {what} {ref!r}: {e}") from e


def _text(value: Any) -> Optional[str]:
    """Blank strings from the Solr dump count as absent."""
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def build_institution(row: Row) -> Institution:
    return _build(
        Institution, "institution", row["id"],
        name=row["name"],
        brief_name=row["brief_name"],
        identifier=row["identifier"],
        dpn_uuid=_text(row["dpn_uuid"]),
    )


def build_user(row: Row, ctx: MigrationContext) -> User:
    return _build(
        User, "user", row["email"],
        name=row["name"],
        email=row["email"],
        phone_number=row["phone_number"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        encrypted_password=row["encrypted_password"],
        reset_password_token=row["reset_password_token"],
        remember_created_at=row["remember_created_at"],
        sign_in_count=row["sign_in_count"],
        current_sign_in_at=row["current_sign_in_at"],
        last_sign_in_at=row["last_sign_in_at"],
        current_sign_in_ip=row["current_sign_in_ip"],
        last_sign_in_ip=row["last_sign_in_ip"],
        institution_id=ctx.resolve("user", "institution_pid", row["institution_pid"]),
        encrypted_api_secret_key=row["encrypted_api_secret_key"],
    )


def build_object(row: Row, ctx: MigrationContext) -> IntellectualObject:
    """
    Build an intellectual object, enriched from the event and work item
    tables: created_at from its latest ingest event, etag from its latest
    successful ingest work item, DPN UUID from its latest DPN event.
    """
    pid = row["id"]
    created_at = queries.object_create_time(ctx.store, pid)
    return _build(
        IntellectualObject, "intellectual object", row["identifier"],
        identifier=row["identifier"],
        title=row["title"],
        description=row["description"],
        alt_identifier=row["alt_identifier"],
        access=row["access"],
        bag_name=row["bag_name"],
        state=row["state"],
        institution_id=ctx.resolve("intellectual object", "institution_id", row["institution_id"]),
        etag=queries.object_etag(ctx.store, row["identifier"]),
        dpn_uuid=queries.object_dpn_uuid(ctx.store, pid),
        created_at=created_at,
        updated_at=created_at,
    )


def build_checksum(row: Row, generic_file_id: Optional[int]) -> Checksum:
    return _build(
        Checksum, "checksum", row["generic_file_id"],
        algorithm=row["algorithm"],
        digest=row["digest"],
        datetime=row["datetime"],
        generic_file_id=generic_file_id,
    )


def build_event(
    row: Row,
    ctx: MigrationContext,
    object_identifier: str,
    resolve_file: bool = True
) -> Optional[PremisEvent]:
    """
    Build a PREMIS event with its type translated and outcome capitalized.

    Returns None for an untranslatable event type when event types are not
    strict; raises UnknownEventTypeError when they are. With
    ``resolve_file`` off the file id is left for the destination to fill in.
    """
    event_type = translate_event_type(row["event_type"], row["outcome_detail"])
    if event_type is None:
        if ctx.config.strict_event_types:
            raise UnknownEventTypeError(row["event_type"], row["identifier"])
        message = f"Skipping event {row['identifier']} with unknown type {row['event_type']!r}"
        logger.warning(message)
        if ctx.step is not None:
            ctx.step.warnings.append(message)
            ctx.step.records_skipped += 1
        return None

    generic_file_id = None
    if resolve_file:
        generic_file_id = ctx.resolve("event", "generic_file_id", _text(row["generic_file_id"]))

    return _build(
        PremisEvent, "event", row["identifier"],
        identifier=row["identifier"],
        event_type=event_type,
        date_time=row["date_time"],
        detail=row["detail"],
        outcome=capitalize_first(row["outcome"]),
        outcome_detail=row["outcome_detail"],
        outcome_information=row["outcome_information"],
        object=row["object"],
        agent=row["agent"],
        intellectual_object_id=ctx.resolve("event", "intellectual_object_id", row["intellectual_object_id"]),
        generic_file_id=generic_file_id,
        institution_id=ctx.resolve("event", "institution_id", row["institution_id"]),
        intellectual_object_identifier=object_identifier,
        generic_file_identifier=row["generic_file_identifier"],
    )


def build_events(rows: List[Row], ctx: MigrationContext, object_identifier: str, resolve_file: bool = True) -> List[PremisEvent]:
    events = (build_event(row, ctx, object_identifier, resolve_file) for row in rows)
    return [event for event in events if event is not None]


def build_file(
    row: Row,
    ctx: MigrationContext,
    object_identifier: str,
    nested: bool = False
) -> GenericFile:
    """
    Build a generic file. Its parent object must already be in the map.

    When ``nested`` is set the file carries its checksums and events, for
    destinations that take them in the same request.
    """
    object_id = ctx.resolve("generic file", "intellectual_object_id", row["intellectual_object_id"], required=True)
    checksums: List[Checksum] = []
    events: List[PremisEvent] = []
    if nested:
        checksums = [build_checksum(c, None) for c in queries.checksums(ctx.store, row["id"])]
        events = build_events(queries.file_events(ctx.store, row["id"]), ctx, object_identifier, resolve_file=False)

    return _build(
        GenericFile, "generic file", row["identifier"],
        identifier=row["identifier"],
        file_format=row["file_format"],
        uri=row["uri"],
        size=row["size"] if _text(row["size"]) else None,
        intellectual_object_id=object_id,
        state=row["state"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        checksums=checksums,
        premis_events=events,
    )


def build_work_item(row: Row, ctx: MigrationContext) -> WorkItem:
    """
    Build a work item. Objects and files are matched by identifier, and
    the institution comes from the object identifier or the bucket name.
    """
    object_identifier = _text(row["object_identifier"])
    file_identifier = _text(row["generic_file_identifier"])
    institution = work_item_institution(object_identifier, _text(row["bucket"]))
    return _build(
        WorkItem, "work item", row["id"],
        intellectual_object_id=ctx.resolve_name("work item", "object_identifier", object_identifier),
        generic_file_id=ctx.resolve_name("work item", "generic_file_identifier", file_identifier),
        name=row["name"],
        etag=row["etag"],
        bucket=row["bucket"],
        user=row["user"],
        note=row["note"],
        action=row["action"],
        stage=row["stage"],
        status=capitalize_first(row["status"]),
        outcome=capitalize_first(row["outcome"]),
        bag_date=row["bag_date"],
        date=row["date"],
        retry=row["retry"],
        object_identifier=row["object_identifier"],
        generic_file_identifier=row["generic_file_identifier"],
        node=row["node"],
        pid=row["pid"],
        needs_admin_review=row["needs_admin_review"],
        institution_id=ctx.resolve_name("work item", "institution", institution),
        queued_at=row["updated_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def build_work_item_state(row: Row, work_item_id: int) -> Optional[WorkItemState]:
    """The work item's state record, or None when the legacy item had no state."""
    if not row["state"]:
        return None
    return _build(
        WorkItemState, "work item state", row["id"],
        work_item_id=work_item_id,
        action=row["action"],
        state=row["state"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
