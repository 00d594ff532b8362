"""Tests for building Pharos records from export rows."""

import pytest

from pharos_migration.exceptions import SourceDataError
from pharos_migration.models.identifier_map import IdentifierMap
from pharos_migration.transformer import (
    MigrationContext,
    build_event,
    build_file,
    build_institution,
    build_object,
    build_work_item,
)


@pytest.fixture
def ctx(source, sql_loader, sql_config):
    id_map = IdentifierMap()
    id_map.put("inst:1", 1)
    id_map.put_by_name("test.edu", 1)
    id_map.put("obj:1", 7)
    id_map.put_by_name("test.edu/bag1", 7)
    return MigrationContext(config=sql_config, store=source, loader=sql_loader, id_map=id_map)


class TestBuilders:
    """Records whose own fields include an identifier build cleanly."""

    def test_institution(self, source):
        inst = build_institution(source.fetch_one("SELECT * FROM institutions WHERE id = 'inst:1'"))
        assert inst.identifier == "test.edu"
        assert inst.brief_name == "test"
        assert inst.dpn_uuid is None

    def test_object(self, source, ctx):
        obj = build_object(source.fetch_one("SELECT * FROM intellectual_objects"), ctx)
        assert obj.identifier == "test.edu/bag1"
        assert obj.institution_id == 1
        assert obj.etag == "etag-1"

    def test_event(self, source, ctx):
        row = source.fetch_one("SELECT * FROM premis_events_solr WHERE identifier = 'ev-1'")
        event = build_event(row, ctx, "test.edu/bag1")
        assert event.identifier == "ev-1"
        assert event.event_type == "ingestion"
        assert event.intellectual_object_id == 7

    def test_file(self, source, ctx):
        gf = build_file(source.fetch_one("SELECT * FROM generic_files"), ctx, "test.edu/bag1")
        assert gf.identifier == "test.edu/bag1/data/a.txt"
        assert gf.intellectual_object_id == 7

    def test_work_item(self, source, ctx):
        item = build_work_item(source.fetch_one("SELECT * FROM processed_items WHERE id = 1"), ctx)
        assert item.intellectual_object_id == 7
        assert item.institution_id == 1

    def test_work_item_from_production_bucket(self, source, ctx):
        row = dict(source.fetch_one("SELECT * FROM processed_items WHERE id = 2"))
        row["bucket"] = "aptrust.receiving.test.edu"
        item = build_work_item(row, ctx)
        assert item.intellectual_object_id is None
        assert item.institution_id == 1

    def test_invalid_row_names_the_record(self, source):
        row = dict(source.fetch_one("SELECT * FROM institutions WHERE id = 'inst:1'"))
        row["name"] = None
        with pytest.raises(SourceDataError) as exc_info:
            build_institution(row)
        assert "inst:1" in str(exc_info.value)
