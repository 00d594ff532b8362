"""Tests for the export queries and batch fetching."""

from conftest import add_event, insert

from pharos_migration.extractors import queries


def add_work_items(store, count):
    for i in range(1, count + 1):
        insert(store, "processed_items", id=i, name=f"bag{i}.tar", action="Ingest",
               status="Success", updated_at=f"2016-01-{i:02d}T00:00:00Z")


class TestBatches:
    """Batches cover every row exactly once and keep result order."""

    def test_work_item_pages(self, empty_source):
        add_work_items(empty_source, 25)
        pages = list(queries.work_item_batches(empty_source, batch_size=10))
        assert [len(page) for page in pages] == [10, 10, 5]
        assert [row["id"] for page in pages for row in page] == list(range(1, 26))

    def test_work_item_limit_and_offset(self, empty_source):
        add_work_items(empty_source, 25)
        pages = list(queries.work_item_batches(empty_source, limit=12, offset=3, batch_size=10))
        assert [len(page) for page in pages] == [10, 2]
        assert [row["id"] for page in pages for row in page] == list(range(4, 16))

    def test_work_item_pages_when_empty(self, empty_source):
        assert list(queries.work_item_batches(empty_source)) == []

    def test_file_batches_match_full_query(self, source):
        for i in range(2, 8):
            insert(source, "generic_files", id=f"gf:{i}", intellectual_object_id="obj:1",
                   identifier=f"test.edu/bag1/data/{i}.txt")
        batches = list(queries.generic_file_batches(source, "obj:1", batch_size=3))
        assert [len(batch) for batch in batches] == [3, 3, 1]
        all_files = [row["identifier"] for row in queries.generic_files(source, "obj:1")]
        assert [row["identifier"] for batch in batches for row in batch] == all_files


class TestObjectQueries:

    def test_limit_and_offset(self, source):
        insert(source, "intellectual_objects", id="obj:2", identifier="test.edu/bag2",
               access="restricted", institution_id="inst:1")
        insert(source, "intellectual_objects", id="obj:3", identifier="test.edu/bag3",
               access="restricted", institution_id="inst:1")
        rows = list(queries.intellectual_objects(source, limit=1, offset=1))
        assert [row["id"] for row in rows] == ["obj:2"]
        rows = list(queries.intellectual_objects(source, offset=2))
        assert [row["id"] for row in rows] == ["obj:3"]

    def test_object_events_exclude_file_events(self, source):
        ids = {row["identifier"] for row in queries.object_events(source, "obj:1")}
        assert ids == {"ev-1", "ev-2"}

    def test_file_events(self, source):
        assert [row["identifier"] for row in queries.file_events(source, "gf:1")] == ["ev-3"]


class TestEnrichment:

    def test_create_time_is_latest_object_ingest(self, source):
        add_event(source, "ev-4", "ingest", "2016-03-01T00:00:00Z")
        add_event(source, "ev-5", "ingest", "2017-01-01T00:00:00Z",
                  generic_file_id="gf:1", generic_file_identifier="test.edu/bag1/data/a.txt")
        assert queries.object_create_time(source, "obj:1") == "2016-03-01T00:00:00Z"

    def test_create_time_without_ingest(self, empty_source):
        assert queries.object_create_time(empty_source, "obj:1") is None

    def test_etag_from_latest_successful_ingest(self, source):
        insert(source, "processed_items", id=3, object_identifier="test.edu/bag1",
               action="Ingest", status="Success", etag="etag-newer",
               updated_at="2016-02-01T00:00:00Z")
        insert(source, "processed_items", id=4, object_identifier="test.edu/bag1",
               action="Ingest", status="Failed", etag="etag-failed",
               updated_at="2016-03-01T00:00:00Z")
        assert queries.object_etag(source, "test.edu/bag1") == "etag-newer"

    def test_dpn_uuid(self, source):
        assert queries.object_dpn_uuid(source, "obj:1") == "0f1e2d3c-aaaa-bbbb-cccc-123456789abc"

    def test_no_dpn_events(self, source):
        insert(source, "intellectual_objects", id="obj:2", identifier="test.edu/bag2")
        assert queries.object_dpn_uuid(source, "obj:2") is None
