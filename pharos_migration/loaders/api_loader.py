"""Loader that writes through the Pharos REST API."""

import logging
from typing import Any, Dict, List, Optional

import requests
import urllib3

from .base import BaseLoader
from ..exceptions import DestinationError
from ..models.records import (
    Institution,
    IntellectualObject,
    GenericFile,
    PremisEvent,
    WorkItem,
    WorkItemState,
)

logger = logging.getLogger(__name__)


class PharosAPILoader(BaseLoader):
    """
    Loader for the Pharos v2 REST API.

    Every write must come back 201 and every listing 200; anything else
    raises DestinationError carrying the response body. Files are sent
    through ``create_batch`` with their checksums and events nested, so
    there are no separate checksum or file-event calls.
    """

    nests_file_records = True

    API_PREFIX = "/api/v2"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_user: str = "system@aptrust.org",
        verify_ssl: bool = False,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the API loader.

        Args:
            base_url: Pharos base URL, e.g. https://demo.aptrust.org
            api_key: Admin API key
            api_user: Email of the API user the key belongs to
            verify_ssl: Verify TLS certificates
            timeout: Request timeout in seconds (None waits indefinitely)
            session: Custom requests session
        """
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_user = api_user
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._session = session or self._create_session()

        if not verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def _create_session(self) -> requests.Session:
        """Create a requests session with the API identity headers."""
        session = requests.Session()
        session.headers["Accept"] = "application/json"
        session.headers["X-Pharos-API-User"] = self.api_user
        session.headers["X-Pharos-API-Key"] = self.api_key
        session.verify = self.verify_ssl
        return session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.API_PREFIX}{path}"

    def _post(
        self,
        path: str,
        what: str,
        identifier: Optional[str],
        json: Any = None,
        data: Optional[Dict[str, Any]] = None
    ) -> Any:
        """POST a payload, expecting 201. Returns the decoded response body."""
        response = self._session.post(self._url(path), json=json, data=data, timeout=self.timeout)
        if response.status_code != 201:
            raise DestinationError(
                f"Error saving {what} {identifier}",
                identifier=identifier,
                status_code=response.status_code,
                body=response.text,
            )
        return response.json() if response.text else {}

    def register_institutions(self, institutions: List[Institution]) -> Dict[str, int]:
        """Look the institutions up in Pharos; the API cannot create them."""
        wanted = {inst.identifier for inst in institutions}
        found: Dict[str, int] = {}

        url: Optional[str] = self._url("/institutions")
        while url:
            response = self._session.get(url, timeout=self.timeout)
            if response.status_code != 200:
                raise DestinationError(
                    "Error getting institutions from Pharos",
                    status_code=response.status_code,
                    body=response.text,
                )
            data = response.json()
            for inst in data.get("results", []):
                if inst.get("identifier") in wanted:
                    found[inst["identifier"]] = inst["id"]
                    logger.info(f"{inst['identifier']} has id {inst['id']}")
            url = data.get("next")

        missing = wanted - set(found)
        if missing:
            logger.warning(f"Institutions not found in Pharos: {', '.join(sorted(missing))}")
        return found

    def create_object(self, obj: IntellectualObject, institution_identifier: Optional[str]) -> int:
        data = self._post(
            f"/objects/{institution_identifier}.json",
            "object",
            obj.identifier,
            data=obj.to_form(),
        )
        self._count("intellectual_objects")
        return data["id"]

    def create_files(self, files: List[GenericFile], object_id: int) -> List[Optional[int]]:
        if not files:
            return []
        data = self._post(
            f"/files/{object_id}/create_batch",
            f"{len(files)} files",
            f"{files[0].identifier}...",
            json=[f.to_api() for f in files],
        )
        self._count("generic_files", len(files))
        self._count("checksums", sum(len(f.checksums) for f in files))
        self._count("premis_events", sum(len(f.premis_events) for f in files))

        created = data if isinstance(data, list) else data.get("results", [])
        id_for = {item.get("identifier"): item.get("id") for item in created if isinstance(item, dict)}
        return [id_for.get(f.identifier) for f in files]

    def create_events(self, events: List[PremisEvent]) -> List[Optional[int]]:
        ids = []
        for event in events:
            data = self._post("/events", "event", event.identifier, json=event.to_api())
            self._count("premis_events")
            ids.append(data.get("id"))
        return ids

    def create_work_item(self, item: WorkItem) -> int:
        data = self._post("/items", "WorkItem", item.name, json=item.to_api())
        self._count("work_items")
        return data["id"]

    def create_work_item_state(self, state: WorkItemState) -> Optional[int]:
        data = self._post(
            "/item_state",
            "WorkItemState for WorkItem",
            str(state.work_item_id),
            json=state.to_api(),
        )
        self._count("work_item_states")
        return data.get("id")

    def validate_connection(self) -> bool:
        """Validate connection to the API."""
        try:
            response = self._session.get(self._url("/institutions"), timeout=self.timeout)
            return response.status_code < 500
        except requests.RequestException as e:
            logger.error(f"API connection validation failed: {e}")
            return False

    def close(self) -> None:
        self._session.close()
