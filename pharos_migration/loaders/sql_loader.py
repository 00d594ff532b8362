"""Loader that writes straight into a Pharos SQLite database."""

import logging
import shutil
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .base import BaseLoader
from ..exceptions import DestinationError
from ..models.records import (
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


# The subset of the Pharos schema this loader writes to. A copy of an
# empty, fully migrated Pharos db already has these tables.
DEST_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS institutions (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         name TEXT, brief_name TEXT, identifier TEXT, dpn_uuid TEXT,
         state TEXT, created_at TEXT, updated_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS users (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         name TEXT, email TEXT, phone_number TEXT, created_at TEXT,
         updated_at TEXT, encrypted_password TEXT, reset_password_token TEXT,
         remember_created_at TEXT, sign_in_count INTEGER,
         current_sign_in_at TEXT, last_sign_in_at TEXT,
         current_sign_in_ip TEXT, last_sign_in_ip TEXT,
         institution_id INTEGER, encrypted_api_secret_key TEXT)""",
    """CREATE TABLE IF NOT EXISTS intellectual_objects (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         title TEXT, description TEXT, identifier TEXT, alt_identifier TEXT,
         access TEXT, bag_name TEXT, institution_id INTEGER, state TEXT,
         etag TEXT, dpn_uuid TEXT, created_at TEXT, updated_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS generic_files (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         file_format TEXT, uri TEXT, size INTEGER, identifier TEXT,
         intellectual_object_id INTEGER, permissions TEXT, state TEXT,
         created_at TEXT, updated_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS checksums (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         algorithm TEXT, datetime TEXT, digest TEXT, generic_file_id INTEGER,
         created_at TEXT, updated_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS premis_events (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         identifier TEXT, event_type TEXT, date_time TEXT,
         outcome_detail TEXT, detail TEXT, outcome_information TEXT,
         object TEXT, agent TEXT, intellectual_object_id INTEGER,
         generic_file_id INTEGER, institution_id INTEGER, outcome TEXT,
         intellectual_object_identifier TEXT, generic_file_identifier TEXT,
         old_uuid TEXT, created_at TEXT, updated_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS work_items (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         intellectual_object_id INTEGER, generic_file_id INTEGER, name TEXT,
         etag TEXT, bucket TEXT, user TEXT, note TEXT, action TEXT,
         stage TEXT, status TEXT, outcome TEXT, bag_date TEXT, date TEXT,
         retry BOOLEAN, object_identifier TEXT, generic_file_identifier TEXT,
         node TEXT, pid INTEGER, needs_admin_review BOOLEAN,
         institution_id INTEGER, queued_at TEXT, size INTEGER,
         stage_started_at TEXT, created_at TEXT, updated_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS work_item_states (
         id INTEGER PRIMARY KEY AUTOINCREMENT,
         work_item_id INTEGER, action TEXT, state TEXT,
         created_at TEXT, updated_at TEXT)""",
)


class SQLLoader(BaseLoader):
    """
    Loader for a Pharos SQLite database file.

    Each call runs in its own transaction, so a batch (one object's files,
    one file's events, one file's checksums) is committed as a whole or
    rolled back as a whole. New ids come from the cursor's last row id.
    """

    def __init__(
        self,
        dest_path: Union[str, Path],
        empty_dest_path: Optional[Union[str, Path]] = None
    ):
        """
        Initialize the SQL loader.

        Args:
            dest_path: Pharos database to write to
            empty_dest_path: Empty Pharos database (all migrations applied)
                copied over dest_path before anything is written
        """
        super().__init__()
        self.dest_path = str(dest_path)

        if empty_dest_path:
            shutil.copyfile(empty_dest_path, self.dest_path)
            logger.info(f"Copied {empty_dest_path} to {self.dest_path}")

        self.connection = sqlite3.connect(self.dest_path)
        self.connection.execute('PRAGMA encoding = "UTF-8"')
        with self.connection:
            for ddl in DEST_SCHEMA:
                self.connection.execute(ddl)

    def _insert(self, record: PharosRecord, identifier: Optional[str]) -> int:
        """Insert one record inside the caller's transaction."""
        try:
            cursor = self.connection.execute(record.insert_statement(), record.to_row())
        except sqlite3.Error as e:
            raise DestinationError(
                f"Error saving {record.TABLE} {identifier}: {e}",
                identifier=identifier,
                body=str(e),
            ) from e
        self._count(record.TABLE)
        return cursor.lastrowid

    def _insert_batch(self, records: Sequence[PharosRecord], identifiers: Sequence[Optional[str]]) -> List[int]:
        """Insert records in one transaction, rolling all of them back on failure."""
        with self.connection:
            return [self._insert(record, identifier) for record, identifier in zip(records, identifiers)]

    def register_institutions(self, institutions: List[Institution]) -> Dict[str, int]:
        found = {}
        for inst in institutions:
            found[inst.identifier] = self._insert_batch([inst], [inst.identifier])[0]
        return found

    def create_users(self, users: List[User]) -> int:
        self._insert_batch(users, [u.email for u in users])
        return len(users)

    def create_object(self, obj: IntellectualObject, institution_identifier: Optional[str]) -> int:
        return self._insert_batch([obj], [obj.identifier])[0]

    def create_files(self, files: List[GenericFile], object_id: int) -> List[Optional[int]]:
        return self._insert_batch(files, [f.identifier for f in files])

    def create_checksums(self, checksums: List[Checksum]) -> None:
        self._insert_batch(checksums, [c.digest for c in checksums])

    def create_events(self, events: List[PremisEvent]) -> List[Optional[int]]:
        return self._insert_batch(events, [e.identifier for e in events])

    def create_work_item(self, item: WorkItem) -> int:
        return self._insert_batch([item], [item.name])[0]

    def create_work_item_state(self, state: WorkItemState) -> Optional[int]:
        return self._insert_batch([state], [str(state.work_item_id)])[0]

    def close(self) -> None:
        self.connection.close()
