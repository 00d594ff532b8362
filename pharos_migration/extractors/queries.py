"""
Queries against the legacy export.

Every function takes the SourceStore as its first argument and holds no
state of its own; prepared statement caching is left to sqlite3.
"""

import logging
import sqlite3
from typing import Iterator, List, Optional

from .base import SourceStore
from ..events import DPN_OUTCOME_PREFIX, dpn_uuid_from_url

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "intellectual_object_id, institution_id, identifier, event_type, "
    "date_time, detail, outcome, outcome_detail, outcome_information, "
    "object, agent, generic_file_id, generic_file_identifier"
)


def _limit_clause(limit: Optional[int], offset: Optional[int]) -> str:
    # SQLite only accepts OFFSET after LIMIT; -1 means no limit.
    if limit is None and offset is None:
        return ""
    clause = f" LIMIT {int(limit) if limit is not None else -1}"
    if offset is not None:
        clause += f" OFFSET {int(offset)}"
    return clause


def institutions(store: SourceStore) -> List[sqlite3.Row]:
    return store.fetch_all(
        "SELECT id, name, brief_name, identifier, dpn_uuid FROM institutions"
    )


def users(store: SourceStore) -> List[sqlite3.Row]:
    return store.fetch_all(
        "SELECT name, email, phone_number, created_at, updated_at, "
        "encrypted_password, reset_password_token, remember_created_at, "
        "sign_in_count, current_sign_in_at, last_sign_in_at, "
        "current_sign_in_ip, last_sign_in_ip, institution_pid, "
        "encrypted_api_secret_key FROM users"
    )


def intellectual_objects(
    store: SourceStore,
    limit: Optional[int] = None,
    offset: Optional[int] = None
) -> Iterator[sqlite3.Row]:
    """Objects in source order, optionally restricted by limit/offset."""
    query = (
        "SELECT id, identifier, title, description, alt_identifier, access, "
        "bag_name, institution_id, state FROM intellectual_objects"
    )
    return iter(store.fetch_all(query + _limit_clause(limit, offset)))


FILE_QUERY = (
    "SELECT id, file_format, uri, size, intellectual_object_id, identifier, "
    "state, created_at, updated_at FROM generic_files "
    "WHERE intellectual_object_id = ?"
)


def generic_files(store: SourceStore, object_pid: str) -> List[sqlite3.Row]:
    return store.fetch_all(FILE_QUERY, (object_pid,))


def generic_file_batches(
    store: SourceStore,
    object_pid: str,
    batch_size: int = 100
) -> Iterator[List[sqlite3.Row]]:
    """An object's files in order-preserving batches."""
    return store.fetch_batches(FILE_QUERY, (object_pid,), batch_size)


def checksums(store: SourceStore, file_pid: str) -> List[sqlite3.Row]:
    return store.fetch_all(
        "SELECT algorithm, datetime, digest, generic_file_id "
        "FROM checksums WHERE generic_file_id = ?",
        (file_pid,),
    )


def file_events(store: SourceStore, file_pid: str) -> List[sqlite3.Row]:
    # There are rarely more than 15 events per file, so no batching.
    return store.fetch_all(
        f"SELECT {EVENT_COLUMNS} FROM premis_events_solr WHERE generic_file_id = ?",
        (file_pid,),
    )


def object_events(store: SourceStore, object_pid: str) -> List[sqlite3.Row]:
    """Events recorded against the object itself rather than one of its files."""
    # Solr dumps store a missing file id as '' rather than NULL.
    return store.fetch_all(
        f"SELECT {EVENT_COLUMNS} FROM premis_events_solr "
        "WHERE (generic_file_id IS NULL OR generic_file_id = '') "
        "AND intellectual_object_id = ?",
        (object_pid,),
    )


def work_item_batches(
    store: SourceStore,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    batch_size: int = 100
) -> Iterator[List[sqlite3.Row]]:
    """
    Page through processed items.

    Paging stops at the first empty page, or once ``limit`` rows have been
    returned.
    """
    query = (
        "SELECT id, created_at, updated_at, name, etag, bucket, user, "
        "institution, note, action, stage, status, outcome, bag_date, date, "
        "retry, reviewed, object_identifier, generic_file_identifier, state, "
        "node, pid, needs_admin_review FROM processed_items "
        "ORDER BY id LIMIT ? OFFSET ?"
    )
    position = offset or 0
    remaining = limit
    while remaining is None or remaining > 0:
        page_size = batch_size if remaining is None else min(batch_size, remaining)
        page = store.fetch_all(query, (page_size, position))
        if not page:
            break
        yield page
        position += len(page)
        if remaining is not None:
            remaining -= len(page)


def object_create_time(store: SourceStore, object_pid: str) -> Optional[str]:
    """Timestamp of the object's most recent object-level ingest event."""
    row = store.fetch_one(
        "SELECT date_time FROM premis_events_solr "
        "WHERE intellectual_object_id = ? AND event_type = 'ingest' "
        "AND (generic_file_identifier = '' OR generic_file_identifier IS NULL) "
        "ORDER BY date_time DESC LIMIT 1",
        (object_pid,),
    )
    return row["date_time"] if row else None


def object_etag(store: SourceStore, object_identifier: str) -> Optional[str]:
    """Etag of the most recent successful ingest of the object's bag."""
    row = store.fetch_one(
        "SELECT etag FROM processed_items WHERE object_identifier = ? "
        "AND action = 'Ingest' AND status = 'Success' "
        "ORDER BY updated_at DESC LIMIT 1",
        (object_identifier,),
    )
    return row["etag"] if row else None


def object_dpn_uuid(store: SourceStore, object_pid: str) -> Optional[str]:
    """DPN UUID from the object's latest DPN ingest event. None for most objects."""
    row = store.fetch_one(
        "SELECT outcome_information FROM premis_events_solr "
        "WHERE intellectual_object_id = ? AND outcome_information LIKE ? "
        "ORDER BY date_time DESC LIMIT 1",
        (object_pid, DPN_OUTCOME_PREFIX + "%"),
    )
    return dpn_uuid_from_url(row["outcome_information"]) if row else None
