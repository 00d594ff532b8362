"""
Pharos Migration

One-time migration tooling that moves digital-preservation metadata out of
the legacy Fedora/Solr repository dump and into Pharos.

Supports:
- Institutions, users, intellectual objects, generic files, checksums
- Object-level and file-level PREMIS events
- Work items and work item states
- Direct SQL-to-SQL copy or loading through the Pharos REST API
- Staging Solr dumps into the SQLite source database
"""

__version__ = "0.1.0"
