"""Readers for the legacy Fedora export."""

from .base import SourceStore
from .solr_dump import SolrDumpImporter, iter_dump_records, parse_ruby_record
from .solr_extractor import SolrExtractor
from . import queries

__all__ = [
    "SourceStore",
    "SolrDumpImporter",
    "SolrExtractor",
    "iter_dump_records",
    "parse_ruby_record",
    "queries",
]
