"""Field transforms applied to legacy rows on their way into Pharos."""

from typing import Optional

# APTrust 1.0 event types -> LOC PREMIS event types. 'access assignment'
# is not in the LOC vocabulary but Pharos still records it.
EVENT_TYPE_MAP = {
    "access_assignment": "access assignment",
    "delete": "deletion",
    "fixity_check": "fixity check",
    "fixity_generation": "message digest calculation",
    "identifier_assignment": "identifier assignment",
    "ingest": "ingestion",
}

# Replication was recorded as a second ingest, to the Oregon bucket.
REPLICATION_MARKER = "aptrust.preservation.oregon"

DPN_OUTCOME_PREFIX = "DPN"

RECEIVING_BUCKET_PREFIX = "aptrust.receiving."
TEST_BUCKET_PREFIX = "aptrust.receiving.test."


def translate_event_type(event_type: Optional[str], outcome_detail: Optional[str] = None) -> Optional[str]:
    """
    Translate a legacy event type to its PREMIS name.

    Returns None for event types with no translation; callers decide
    whether that is fatal.
    """
    if event_type == "ingest" and REPLICATION_MARKER in (outcome_detail or ""):
        return "replication"
    return EVENT_TYPE_MAP.get(event_type)


def capitalize_first(value: Optional[str]) -> Optional[str]:
    """Upper-case the first character, leaving the rest alone."""
    if not value:
        return value
    return value[0].upper() + value[1:]


def dpn_uuid_from_url(url: Optional[str]) -> Optional[str]:
    """
    Extract the DPN bag UUID from a DPN ingest outcome.

    The outcome information looks like ``DPN/2020/<uuid>.tar``; anything
    not ending in ``.tar`` yields None.
    """
    if not url:
        return None
    tar_file = url.split("/")[-1]
    if not tar_file.endswith(".tar"):
        return None
    return tar_file[:-len(".tar")]


def work_item_institution(object_identifier: Optional[str], bucket: Optional[str]) -> Optional[str]:
    """
    Derive a work item's institution identifier.

    ``aptrust.receiving.test.edu`` is the production bucket of ``test.edu``,
    so the test prefix only counts when a dotted identifier follows it.
    """
    if object_identifier:
        return object_identifier.split("/")[0]
    if not bucket:
        return None
    if bucket.startswith(TEST_BUCKET_PREFIX) and "." in bucket[len(TEST_BUCKET_PREFIX):]:
        return bucket[len(TEST_BUCKET_PREFIX):]
    if bucket.startswith(RECEIVING_BUCKET_PREFIX):
        return bucket[len(RECEIVING_BUCKET_PREFIX):]
    return bucket
