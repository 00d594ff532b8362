"""
Staging of Solr dumps into the legacy export database.

Bugs in Hydra/Fedora keep the Fluctus rake export from reaching every
PREMIS event, and the stack is too unstable for long exports, so objects,
files and events are dumped straight from Solr with ``wt=ruby`` and loaded
into SQLite here. The dumps are far too big to read at once, so they are
parsed one document at a time.
"""

import ast
import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .base import SourceStore
from ..exceptions import SourceDataError

logger = logging.getLogger(__name__)

RECORD_TYPES = ("objects", "files", "events")

# Quoted strings are matched first so that '=>' and nil inside them survive.
_RUBY_TOKEN = re.compile(
    r"'(?:[^'\\]|\\.)*'"
    r'|"(?:[^"\\]|\\.)*"'
    r"|=>"
    r"|\bnil\b|\btrue\b|\bfalse\b"
)
_RUBY_REPLACEMENTS = {"=>": ":", "nil": "None", "true": "True", "false": "False"}

OBJECT_INSERT = (
    "INSERT INTO intellectual_objects (id, identifier, title, description, "
    "alt_identifier, access, bag_name, institution_id, state) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"
)
FILE_INSERT = (
    "INSERT INTO generic_files (id, file_format, uri, size, "
    "intellectual_object_id, identifier, state, created_at, updated_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"
)
EVENT_INSERT = (
    "INSERT INTO premis_events_solr (intellectual_object_id, generic_file_id, "
    "institution_id, generic_file_identifier, identifier, event_type, "
    "date_time, detail, outcome, outcome_detail, outcome_information, "
    "object, agent, timestamp, generic_file_uri) "
    "VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)"
)


def parse_ruby_record(text: str) -> Dict[str, Any]:
    """Parse one Solr ``wt=ruby`` document literal into a dict."""
    def replace(match: "re.Match") -> str:
        token = match.group(0)
        return _RUBY_REPLACEMENTS.get(token, token)

    value = ast.literal_eval(_RUBY_TOKEN.sub(replace, text))
    if not isinstance(value, dict):
        raise ValueError(f"Expected a document, got {type(value).__name__}")
    return value


def iter_dump_records(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """
    Yield the documents of a Solr ruby dump.

    Everything up to the ``'response'=>`` line is header. A document ends
    on a line ending with ``},`` or ``}]``; a bare ``},`` closes the
    response. Documents that will not parse are logged and skipped, apart
    from the facet and closing-brace fragments that trail the data.
    """
    found_response = False
    record = ""
    for line_num, line in enumerate(lines, 1):
        stripped = line.strip()
        if not found_response:
            if stripped.startswith("'response'=>"):
                found_response = True
            continue
        if stripped == "},":
            break
        record += stripped
        if not (stripped.endswith("},") or stripped.endswith("}]")):
            continue
        text = record[:-1]  # trailing comma or bracket
        record = ""
        try:
            yield parse_ruby_record(text)
        except (ValueError, SyntaxError) as e:
            if "facet_" in text or text == "}":
                continue
            logger.warning(f"Invalid record ending at line {line_num}: {e}: {text[:200]}")


def get_value(data: Dict[str, Any], key: str) -> Any:
    """
    Scalar value of a Solr field.

    Values are usually single-item lists but are sometimes bare strings or
    numbers. Missing or empty values come back as ''.
    """
    value = data.get(key)
    if value is None or value == []:
        return ""
    if isinstance(value, list):
        return value[0]
    return value


def get_access(data: Dict[str, Any]) -> Optional[str]:
    """
    Access level from the object's read groups.

    Restricted  = discover: 1, read: 0, edit: 1
    Institution = discover: 0, read: 1, edit: 1
    Consortia   = discover: 0, read: 2, edit: 1
    """
    read = data.get("read_access_group_ssim")
    if not read:
        return "restricted"
    if len(read) == 1:
        return "institution"
    if len(read) == 2:
        return "consortia"
    return None


def _parent_pid(data: Dict[str, Any], what: str) -> str:
    # is_part_of_ssim looks like 'info:fedora/aptrust-test:350660'
    is_part_of = get_value(data, "is_part_of_ssim")
    parts = str(is_part_of).split("/")
    if len(parts) < 2 or not parts[1]:
        raise SourceDataError(f"No {what} for {is_part_of!r} (doc {get_value(data, 'id')!r})")
    return parts[1]


def object_row(data: Dict[str, Any]) -> Tuple[Any, ...]:
    return (
        get_value(data, "id"),
        get_value(data, "desc_metadata__identifier_ssim"),
        get_value(data, "desc_metadata__title_tesim"),
        get_value(data, "desc_metadata__description_tesim"),
        get_value(data, "desc_metadata__alt_identifier_ssim"),
        get_access(data),
        get_value(data, "desc_metadata__bag_name_ssim"),
        _parent_pid(data, "institution"),
        get_value(data, "object_state_ssi"),
    )


def file_row(data: Dict[str, Any]) -> Tuple[Any, ...]:
    return (
        get_value(data, "id"),
        get_value(data, "tech_metadata__file_format_ssi"),
        get_value(data, "tech_metadata__uri_ssim"),
        get_value(data, "tech_metadata__size_lsi"),
        _parent_pid(data, "parent object"),
        get_value(data, "tech_metadata__identifier_ssim"),
        get_value(data, "object_state_ssi"),
        get_value(data, "system_create_dtsi"),
        get_value(data, "system_modified_dtsi"),
    )


def event_row(data: Dict[str, Any]) -> Tuple[Any, ...]:
    return tuple(get_value(data, key) for key in (
        "intellectual_object_id_ssim",
        "generic_file_id_ssim",
        "institution_id_ssim",
        "generic_file_identifier_ssim",
        "event_identifier_ssim",
        "event_type_ssim",
        "event_date_time_ssim",
        "event_detail_ssim",
        "event_outcome_ssim",
        "event_outcome_detail_ssim",
        "event_outcome_information_ssim",
        "event_object_ssim",
        "event_agent_ssim",
        "timestamp",
        "generic_file_uri_ssim",
    ))


ROW_BUILDERS: Dict[str, Tuple[str, Callable[[Dict[str, Any]], Tuple[Any, ...]]]] = {
    "objects": (OBJECT_INSERT, object_row),
    "files": (FILE_INSERT, file_row),
    "events": (EVENT_INSERT, event_row),
}


def insert_documents(store: SourceStore, record_type: str, docs: List[Dict[str, Any]]) -> int:
    """Insert one batch of Solr documents in a single transaction."""
    statement, builder = ROW_BUILDERS[record_type]
    store.insert_many(statement, [builder(doc) for doc in docs])
    return len(docs)


class SolrDumpImporter:
    """Loads ``objects.rb``, ``files.rb`` and ``events.rb`` dumps into the export db."""

    def __init__(
        self,
        store: SourceStore,
        data_dir: Union[str, Path],
        batch_size: int = 1000
    ):
        """
        Initialize the importer.

        Args:
            store: Export database to stage records into
            data_dir: Directory holding the .rb dump files
            batch_size: Documents per insert transaction
        """
        self.store = store
        self.data_dir = Path(data_dir)
        self.batch_size = batch_size
        self.store.create_tables()

    def copy_records(self, record_type: str) -> int:
        """
        Copy one dump file into its staging table.

        Returns:
            Number of documents inserted
        """
        if record_type not in RECORD_TYPES:
            raise ValueError(f"record_type must be one of {', '.join(RECORD_TYPES)}")

        path = self.data_dir / f"{record_type}.rb"
        count = 0
        batch: List[Dict[str, Any]] = []

        with open(path, encoding="utf-8") as f:
            for doc in iter_dump_records(f):
                batch.append(doc)
                if len(batch) == self.batch_size:
                    count += insert_documents(self.store, record_type, batch)
                    logger.info(f"{count} {record_type}")
                    batch = []

        if batch:
            count += insert_documents(self.store, record_type, batch)
            logger.info(f"{count} {record_type}")

        return count

    def copy_all(self, record_types: Iterable[str] = RECORD_TYPES) -> Dict[str, int]:
        """Copy several dump files, objects first."""
        return {record_type: self.copy_records(record_type) for record_type in record_types}
