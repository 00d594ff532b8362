"""SQLite handle on the legacy Fedora export."""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)


# Tables produced by the Fluctus export rake task and the Solr dump
# importers. Only used when staging a fresh database or in tests; a real
# export already has them.
SOURCE_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS institutions (
         id TEXT PRIMARY KEY,
         name TEXT,
         brief_name TEXT,
         identifier TEXT,
         dpn_uuid TEXT)""",
    """CREATE TABLE IF NOT EXISTS users (
         name TEXT,
         email TEXT,
         phone_number TEXT,
         created_at TEXT,
         updated_at TEXT,
         encrypted_password TEXT,
         reset_password_token TEXT,
         remember_created_at TEXT,
         sign_in_count INTEGER,
         current_sign_in_at TEXT,
         last_sign_in_at TEXT,
         current_sign_in_ip TEXT,
         last_sign_in_ip TEXT,
         institution_pid TEXT,
         encrypted_api_secret_key TEXT)""",
    """CREATE TABLE IF NOT EXISTS intellectual_objects (
         id TEXT PRIMARY KEY,
         identifier TEXT,
         title TEXT,
         description TEXT,
         alt_identifier TEXT,
         access TEXT,
         bag_name TEXT,
         institution_id TEXT,
         state TEXT)""",
    """CREATE TABLE IF NOT EXISTS generic_files (
         id TEXT PRIMARY KEY,
         file_format TEXT,
         uri TEXT,
         size REAL,
         intellectual_object_id TEXT,
         identifier TEXT,
         state TEXT,
         created_at TEXT,
         updated_at TEXT)""",
    """CREATE TABLE IF NOT EXISTS checksums (
         algorithm TEXT,
         datetime TEXT,
         digest TEXT,
         generic_file_id TEXT)""",
    """CREATE TABLE IF NOT EXISTS premis_events_solr (
         intellectual_object_id TEXT,
         generic_file_id TEXT,
         institution_id TEXT,
         generic_file_identifier TEXT,
         identifier TEXT,
         event_type TEXT,
         date_time TEXT,
         detail TEXT,
         outcome TEXT,
         outcome_detail TEXT,
         outcome_information TEXT,
         object TEXT,
         agent TEXT,
         timestamp TEXT,
         generic_file_uri TEXT)""",
    """CREATE TABLE IF NOT EXISTS processed_items (
         id INTEGER PRIMARY KEY,
         created_at TEXT,
         updated_at TEXT,
         name TEXT,
         etag TEXT,
         bucket TEXT,
         user TEXT,
         institution TEXT,
         note TEXT,
         action TEXT,
         stage TEXT,
         status TEXT,
         outcome TEXT,
         bag_date TEXT,
         date TEXT,
         retry BOOLEAN,
         reviewed BOOLEAN,
         object_identifier TEXT,
         generic_file_identifier TEXT,
         state TEXT,
         node TEXT,
         pid INTEGER,
         needs_admin_review BOOLEAN)""",
)

INDEXES = (
    ("ix_gf_obj_id", "generic_files(intellectual_object_id)"),
    ("ix_cs_gf_id", "checksums(generic_file_id)"),
    ("ix_items_obj_identifier", "processed_items(object_identifier)"),
    ("ix_event_obj_id", "premis_events_solr(intellectual_object_id)"),
    ("ix_event_gf_id", "premis_events_solr(generic_file_id)"),
)


class SourceStore:
    """
    Read handle on the legacy export database.

    Rows come back as ``sqlite3.Row`` so they can be read by column name.
    The only writes issued through a store are index creation and Solr
    dump staging.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        self.connection = sqlite3.connect(self.path)
        self.connection.row_factory = sqlite3.Row
        self.connection.execute('PRAGMA encoding = "UTF-8"')

    def __enter__(self) -> "SourceStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.connection.close()

    def execute(self, query: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.connection.execute(query, params)

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return self.connection.execute(query, params).fetchall()

    def fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        return self.connection.execute(query, params).fetchone()

    def fetch_batches(
        self,
        query: str,
        params: Sequence[Any] = (),
        batch_size: int = 100
    ) -> Iterator[List[sqlite3.Row]]:
        """
        Yield the rows of a query in batches of at most ``batch_size``.

        Batches keep the order of the result set and iteration ends at the
        first empty batch.
        """
        cursor = self.connection.execute(query, params)
        try:
            while True:
                batch = cursor.fetchmany(batch_size)
                if not batch:
                    break
                yield batch
        finally:
            cursor.close()

    def insert_many(self, statement: str, rows: Iterable[Sequence[Any]]) -> None:
        """Insert rows in a single transaction."""
        with self.connection:
            self.connection.executemany(statement, rows)

    def create_tables(self) -> None:
        """Create any missing export tables."""
        with self.connection:
            for ddl in SOURCE_SCHEMA:
                self.connection.execute(ddl)

    def create_indexes(self) -> None:
        """Create the lookup indexes the importers depend on. Safe to repeat."""
        logger.info("Creating SQLite indexes")
        with self.connection:
            for name, target in INDEXES:
                self.connection.execute(f"CREATE INDEX IF NOT EXISTS {name} ON {target}")
