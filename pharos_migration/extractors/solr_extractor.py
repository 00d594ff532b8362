"""Pages objects, files and events out of Solr into the export database."""

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from .base import SourceStore
from .solr_dump import RECORD_TYPES, insert_documents

logger = logging.getLogger(__name__)


class SolrExtractor:
    """
    Extractor for the Fluctus Solr index.

    Reads ``select`` results a page at a time and stages each page through
    the same inserts the dump importer uses.
    """

    QUERIES = {
        "objects": 'has_model_ssim:"info:fedora/afmodel:IntellectualObject"',
        "files": 'has_model_ssim:"info:fedora/afmodel:GenericFile"',
        "events": "event_type_ssim:*",
    }

    def __init__(
        self,
        store: SourceStore,
        solr_url: str = "http://localhost:8080/solr/production/select",
        batch_size: int = 1000,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize the Solr extractor.

        Args:
            store: Export database to stage records into
            solr_url: URL of the Solr select handler
            batch_size: Rows requested per page
            session: Custom requests session
            timeout: Request timeout in seconds
        """
        self.store = store
        self.solr_url = solr_url
        self.batch_size = batch_size
        self.timeout = timeout
        self._session = session or self._create_session()
        self.store.create_tables()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["Accept"] = "application/json"
        return session

    def fetch_page(self, record_type: str, start: int) -> Optional[List[Dict[str, Any]]]:
        """
        Fetch one page of documents.

        Returns:
            The page's documents, or None if Solr answered with anything but 200
        """
        params = {
            "q": self.QUERIES[record_type],
            "start": start,
            "rows": self.batch_size,
            "wt": "json",
        }
        response = self._session.get(self.solr_url, params=params, timeout=self.timeout)
        if response.status_code != 200:
            logger.error(f"Response code {response.status_code} from Solr\n{response.text}")
            return None
        return response.json().get("response", {}).get("docs", [])

    def export(self, record_type: str) -> int:
        """
        Export every document of one type.

        Returns:
            Number of documents staged
        """
        if record_type not in RECORD_TYPES:
            raise ValueError(f"record_type must be one of {', '.join(RECORD_TYPES)}")

        start = 0
        count = 0
        while True:
            docs = self.fetch_page(record_type, start)
            if not docs:
                break
            count += insert_documents(self.store, record_type, docs)
            start += self.batch_size
            logger.info(f"{record_type.capitalize()}: {count}")

        return count

    def export_all(self, record_types: Iterable[str] = RECORD_TYPES) -> Dict[str, int]:
        """Export several record types, objects first."""
        return {record_type: self.export(record_type) for record_type in record_types}
