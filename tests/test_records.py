"""Tests for the Pharos record models."""

import pytest
from pydantic import ValidationError

from pharos_migration.models.records import (
    Access,
    Checksum,
    GenericFile,
    Institution,
    IntellectualObject,
    PremisEvent,
    User,
    WorkItemState,
)


class TestInstitution:

    def test_defaults(self):
        inst = Institution(name="Test University", identifier="test.edu")
        assert inst.state == "A"
        assert inst.created_at == "2015-01-01T00:00:00Z"
        assert inst.updated_at == "2015-01-01T00:00:00Z"

    def test_insert_statement_matches_row(self):
        inst = Institution(name="Test University", brief_name="test", identifier="test.edu")
        statement = Institution.insert_statement()
        assert statement.startswith("INSERT INTO institutions (name, brief_name, identifier")
        assert statement.count("?") == len(inst.to_row())

    def test_records_are_frozen(self):
        inst = Institution(name="Test University", identifier="test.edu")
        with pytest.raises(ValidationError):
            inst.name = "Changed"


class TestUser:

    def test_blank_reset_token_is_generated(self):
        """Blank tokens would collide on the unique index."""
        first = User(email="a@test.edu", reset_password_token="")
        second = User(email="b@test.edu", reset_password_token=None)
        assert len(first.reset_password_token) == 128
        assert first.reset_password_token != second.reset_password_token

    def test_existing_reset_token_is_kept(self):
        user = User(email="a@test.edu", reset_password_token="token")
        assert user.reset_password_token == "token"


class TestIntellectualObject:

    def test_access_is_lowercased(self):
        obj = IntellectualObject(identifier="test.edu/bag1", access="Consortia")
        assert obj.access == Access.CONSORTIA
        assert obj.to_row()[IntellectualObject.COLUMNS.index("access")] == "consortia"

    def test_invalid_access(self):
        with pytest.raises(ValidationError):
            IntellectualObject(identifier="test.edu/bag1", access="public")

    def test_form_payload(self):
        obj = IntellectualObject(
            identifier="test.edu/bag1",
            title="Bag One",
            access="institution",
            institution_id=3,
        )
        form = obj.to_form()
        assert form["intellectual_object[identifier]"] == "test.edu/bag1"
        assert form["intellectual_object[access]"] == "institution"
        assert form["intellectual_object[institution_id]"] == 3
        assert "intellectual_object[description]" not in form


class TestGenericFile:

    def test_api_payload_nests_children(self):
        gf = GenericFile(
            identifier="test.edu/bag1/data/a.txt",
            size=100,
            intellectual_object_id=7,
            checksums=[Checksum(algorithm="md5", digest="abc", generic_file_id=9)],
            premis_events=[PremisEvent(identifier="ev-3", event_type="fixity check")],
        )
        data = gf.to_api()
        assert "checksums" not in data
        assert data["checksums_attributes"] == [{"algorithm": "md5", "digest": "abc", "datetime": None}]
        assert data["premis_events_attributes"][0]["event_type"] == "fixity check"

    def test_row_has_empty_permissions(self):
        gf = GenericFile(identifier="test.edu/bag1/data/a.txt", intellectual_object_id=7)
        row = gf.to_row()
        assert row[GenericFile.COLUMNS.index("permissions")] is None
        assert row[GenericFile.COLUMNS.index("intellectual_object_id")] == 7

    def test_parent_is_required(self):
        with pytest.raises(ValidationError):
            GenericFile(identifier="test.edu/bag1/data/a.txt", intellectual_object_id=None)


class TestTimestamps:

    def test_checksum_timestamps_follow_datetime(self):
        cs = Checksum(algorithm="md5", digest="abc", datetime="2016-01-01T00:00:00Z", generic_file_id=1)
        assert cs.to_row() == ("md5", "2016-01-01T00:00:00Z", "abc", 1,
                               "2016-01-01T00:00:00Z", "2016-01-01T00:00:00Z")

    def test_event_timestamps_follow_date_time(self):
        event = PremisEvent(identifier="ev-1", event_type="ingestion", date_time="2016-01-01T10:00:00Z")
        row = dict(zip(PremisEvent.COLUMNS, event.to_row()))
        assert row["old_uuid"] is None
        assert row["created_at"] == "2016-01-01T10:00:00Z"
        assert row["updated_at"] == "2016-01-01T10:00:00Z"

    def test_work_item_state_api_omits_timestamps(self):
        state = WorkItemState(work_item_id=4, action="Ingest", state="{}", created_at="2016-01-01")
        assert state.to_api() == {"work_item_id": 4, "action": "Ingest", "state": "{}"}
