"""Shared fixtures: a small legacy export and a scratch Pharos database."""

import json
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest

from pharos_migration.extractors.base import SourceStore
from pharos_migration.loaders.sql_loader import SQLLoader
from pharos_migration.models.migration import DestinationType, MigrationConfig


def insert(store: SourceStore, table: str, **values: Any) -> None:
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    with store.connection:
        store.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(values.values()))


EVENT_DEFAULTS: Dict[str, Any] = {
    "intellectual_object_id": "obj:1",
    "generic_file_id": "",
    "institution_id": "inst:1",
    "generic_file_identifier": "",
    "detail": "Completed copy to preservation storage",
    "outcome": "success",
    "outcome_detail": "",
    "outcome_information": "",
    "object": "goamz S3 client",
    "agent": "https://github.com/crowdmob/goamz",
}


def add_event(store: SourceStore, identifier: str, event_type: str, date_time: str, **values: Any) -> None:
    row = dict(EVENT_DEFAULTS, identifier=identifier, event_type=event_type, date_time=date_time)
    row.update(values)
    insert(store, "premis_events_solr", **row)


@pytest.fixture
def empty_source(tmp_path):
    """An export database with every table and no rows."""
    store = SourceStore(tmp_path / "fedora_export.db")
    store.create_tables()
    yield store
    store.close()


@pytest.fixture
def source(empty_source):
    """
    One institution with one object, one file, two checksums and three
    events, a second institution with nothing in it, and two work items.
    """
    store = empty_source
    insert(store, "institutions", id="inst:1", name="Test University",
           brief_name="test", identifier="test.edu", dpn_uuid="")
    insert(store, "institutions", id="inst:2", name="Other College",
           brief_name="other", identifier="other.edu", dpn_uuid="")
    insert(store, "users", name="Jane Doe", email="jane@test.edu", phone_number="5555555555",
           created_at="2015-06-01T00:00:00Z", updated_at="2015-06-01T00:00:00Z",
           encrypted_password="$2a$10$xyz", reset_password_token="", sign_in_count=3,
           institution_pid="inst:1")
    insert(store, "intellectual_objects", id="obj:1", identifier="test.edu/bag1",
           title="Bag One", description="First bag", alt_identifier="alt-1",
           access="Institution", bag_name="bag1", institution_id="inst:1", state="A")
    insert(store, "generic_files", id="gf:1", file_format="text/plain",
           uri="https://s3.amazonaws.com/aptrust.preservation/abc", size=100,
           intellectual_object_id="obj:1", identifier="test.edu/bag1/data/a.txt",
           state="A", created_at="2016-01-01T00:00:00Z", updated_at="2016-01-02T00:00:00Z")
    insert(store, "checksums", algorithm="md5", datetime="2016-01-01T00:00:00Z",
           digest="abc123", generic_file_id="gf:1")
    insert(store, "checksums", algorithm="sha256", datetime="2016-01-01T00:00:00Z",
           digest="def456", generic_file_id="gf:1")
    add_event(store, "ev-1", "ingest", "2016-01-01T10:00:00Z")
    add_event(store, "ev-2", "identifier_assignment", "2016-02-01T00:00:00Z",
              outcome_information="DPN/2016/0f1e2d3c-aaaa-bbbb-cccc-123456789abc.tar")
    add_event(store, "ev-3", "fixity_check", "2016-01-03T00:00:00Z",
              generic_file_id="gf:1", generic_file_identifier="test.edu/bag1/data/a.txt")
    insert(store, "processed_items", id=1, created_at="2016-01-01T00:00:00Z",
           updated_at="2016-01-05T00:00:00Z", name="bag1.tar", etag="etag-1",
           bucket="aptrust.receiving.test.edu", user="system@aptrust.org",
           action="Ingest", stage="Record", status="Success", outcome="success",
           object_identifier="test.edu/bag1", generic_file_identifier="",
           state=json.dumps({"step": "done"}), node="", retry=1, needs_admin_review=0)
    insert(store, "processed_items", id=2, created_at="2016-01-06T00:00:00Z",
           updated_at="2016-01-07T00:00:00Z", name="bag2.tar", etag="etag-2",
           bucket="aptrust.receiving.test.test.edu", action="Ingest", stage="Receive",
           status="pending", outcome="", object_identifier="", generic_file_identifier="",
           state="", retry=1, needs_admin_review=0)
    return store


@pytest.fixture
def sql_loader(tmp_path):
    loader = SQLLoader(tmp_path / "pharos.db")
    yield loader
    loader.close()


@pytest.fixture
def sql_config(tmp_path):
    return MigrationConfig(
        destination=DestinationType.SQL,
        dest_path=str(tmp_path / "pharos.db"),
        output_dir=str(tmp_path),
        save_report=False,
    )


@pytest.fixture
def make_response():
    """Build a stand-in for a requests Response."""
    def _make(status_code: int, data: Any = None) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.text = json.dumps(data) if data is not None else ""
        response.json.return_value = data
        return response
    return _make
