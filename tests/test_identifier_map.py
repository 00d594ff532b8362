"""Tests for the identifier map."""

import pytest

from pharos_migration.exceptions import IdentifierConflictError
from pharos_migration.models.identifier_map import IdentifierMap


class TestIdentifierMap:

    def test_pid_lookup(self):
        id_map = IdentifierMap()
        id_map.put("obj:1", 10)
        assert id_map.get("obj:1") == 10
        assert "obj:1" in id_map
        assert len(id_map) == 1

    def test_missing_lookups_are_none(self):
        id_map = IdentifierMap()
        assert id_map.get("obj:404") is None
        assert id_map.get(None) is None
        assert id_map.get_by_name("test.edu/none") is None
        assert id_map.name_of("inst:404") is None

    def test_name_tables_are_separate(self):
        id_map = IdentifierMap()
        id_map.put("inst:1", 1)
        id_map.put_by_name("test.edu", 1)
        id_map.put_name("inst:1", "test.edu")

        assert id_map.get_by_name("test.edu") == 1
        assert id_map.name_of("inst:1") == "test.edu"
        assert id_map.has_name("test.edu")
        assert id_map.get("test.edu") is None

    def test_setting_same_value_again_is_allowed(self):
        id_map = IdentifierMap()
        id_map.put("obj:1", 10)
        id_map.put("obj:1", 10)
        assert id_map.get("obj:1") == 10

    def test_conflicting_value_raises(self):
        """Entries are append-only: an existing key cannot be repointed."""
        id_map = IdentifierMap()
        id_map.put("obj:1", 10)
        with pytest.raises(IdentifierConflictError):
            id_map.put("obj:1", 11)
        assert id_map.get("obj:1") == 10

    def test_conflicting_name_raises(self):
        id_map = IdentifierMap()
        id_map.put_name("inst:1", "test.edu")
        with pytest.raises(IdentifierConflictError):
            id_map.put_name("inst:1", "other.edu")

    def test_none_key_is_ignored(self):
        id_map = IdentifierMap()
        id_map.put(None, 5)
        id_map.put_by_name(None, 5)
        assert len(id_map) == 0
