"""Old-identifier to new-identifier reconciliation table."""

import logging
from typing import Dict, Optional

from ..exceptions import IdentifierConflictError

logger = logging.getLogger(__name__)


class IdentifierMap:
    """
    Maps legacy Fedora pids and textual identifiers to new Pharos ids.

    Three tables are kept:
    - old pid -> new numeric id
    - name (institution, object or file identifier) -> new numeric id
    - old institution pid -> institution identifier

    Entries are append-only for the life of one run. Setting a key again
    with the same value is allowed; setting it to a different value raises
    IdentifierConflictError.
    """

    def __init__(self):
        self._new_id_for: Dict[str, int] = {}
        self._id_for_name: Dict[str, int] = {}
        self._name_of: Dict[str, str] = {}

    @staticmethod
    def _set(table: Dict, key, value, label: str) -> None:
        if key is None:
            return
        existing = table.get(key)
        if existing is not None and existing != value:
            raise IdentifierConflictError(
                f"{label} {key!r} already maps to {existing!r}, refusing {value!r}"
            )
        table[key] = value

    def put(self, old_id: Optional[str], new_id: int) -> None:
        """Record the new id assigned to a legacy pid."""
        self._set(self._new_id_for, old_id, new_id, "pid")

    def get(self, old_id: Optional[str]) -> Optional[int]:
        """Get the new id for a legacy pid, or None."""
        if old_id is None:
            return None
        return self._new_id_for.get(old_id)

    def put_by_name(self, name: Optional[str], new_id: int) -> None:
        """Record the new id assigned to a textual identifier."""
        self._set(self._id_for_name, name, new_id, "name")

    def get_by_name(self, name: Optional[str]) -> Optional[int]:
        """Get the new id for a textual identifier, or None."""
        if name is None:
            return None
        return self._id_for_name.get(name)

    def put_name(self, old_id: Optional[str], name: str) -> None:
        """Record the display identifier of a legacy institution pid."""
        self._set(self._name_of, old_id, name, "institution pid")

    def name_of(self, old_id: Optional[str]) -> Optional[str]:
        """Get the display identifier for a legacy institution pid."""
        if old_id is None:
            return None
        return self._name_of.get(old_id)

    def has_name(self, name: str) -> bool:
        return name in self._id_for_name

    def __contains__(self, old_id: str) -> bool:
        return old_id in self._new_id_for

    def __len__(self) -> int:
        return len(self._new_id_for)

    def to_dict(self) -> Dict[str, int]:
        """Summary counts for the run report."""
        return {
            "pids": len(self._new_id_for),
            "names": len(self._id_for_name),
            "institutions": len(self._name_of),
        }
