"""Base loader interface for the Pharos destination."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging

from ..models.records import (
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


class BaseLoader(ABC):
    """
    Base class for destination loaders.

    Loaders write one kind of record at a time and hand back the ids
    Pharos assigned, so the orchestrator can fill in the identifier map.
    Any write the destination does not accept raises DestinationError;
    loaders never retry.
    """

    # True when files carry their checksums and events in the same request.
    nests_file_records: bool = False

    def __init__(self):
        self._created_records: Dict[str, int] = {}  # entity -> count written

    def _count(self, entity: str, n: int = 1) -> None:
        self._created_records[entity] = self._created_records.get(entity, 0) + n

    @abstractmethod
    def register_institutions(self, institutions: List[Institution]) -> Dict[str, int]:
        """
        Make the source institutions known to the destination.

        Returns:
            Mapping of institution identifier -> Pharos id, for every
            institution that exists in the destination afterwards
        """
        pass

    def create_users(self, users: List[User]) -> int:
        """Copy user accounts. Not every destination supports this."""
        logger.info(f"{type(self).__name__} does not import users, skipping {len(users)}")
        return 0

    @abstractmethod
    def create_object(self, obj: IntellectualObject, institution_identifier: Optional[str]) -> int:
        """Write one intellectual object and return its new id."""
        pass

    @abstractmethod
    def create_files(self, files: List[GenericFile], object_id: int) -> List[Optional[int]]:
        """
        Write a batch of generic files belonging to one object.

        Returns:
            New ids in the same order as ``files``; None where the
            destination did not report one
        """
        pass

    def create_checksums(self, checksums: List[Checksum]) -> None:
        """Write checksums on their own. Destinations that nest them in their file skip this."""
        logger.debug(f"{type(self).__name__} takes checksums with their file, skipping {len(checksums)}")

    @abstractmethod
    def create_events(self, events: List[PremisEvent]) -> List[Optional[int]]:
        pass

    @abstractmethod
    def create_work_item(self, item: WorkItem) -> int:
        pass

    @abstractmethod
    def create_work_item_state(self, state: WorkItemState) -> Optional[int]:
        pass

    def validate_connection(self) -> bool:
        """Validate the connection to the destination."""
        return True

    def close(self) -> None:
        """Release any connection held by the loader."""

    def get_counts(self) -> Dict[str, int]:
        """Records written so far, by entity."""
        return self._created_records.copy()
