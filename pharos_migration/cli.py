"""Command line entry point for the Fedora to Pharos migration."""

import argparse
import http.client as http_client
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .exceptions import MigrationError
from .extractors.base import SourceStore
from .extractors.solr_dump import RECORD_TYPES, SolrDumpImporter
from .extractors.solr_extractor import SolrExtractor
from .models.migration import MigrationConfig, MigrationRun
from .orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool, log_file: Optional[str] = "import.log") -> None:
    """Log to stderr and append to ``log_file``."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    if verbose:
        http_client.HTTPConnection.debuglevel = 1
        for noisy in ("urllib3", "requests"):
            logging.getLogger(noisy).setLevel(logging.DEBUG)
            logging.getLogger(noisy).propagate = True


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("limit", nargs="?", type=int, help="Import at most this many objects and work items")
    parser.add_argument("offset", nargs="?", type=int, help="Skip this many objects and work items first")
    parser.add_argument("--source", dest="source_path", help="Legacy export database (default fedora_export.db)")
    parser.add_argument("--config", help="JSON config file; command line values override it")
    parser.add_argument("--batch-size", type=int, help="Files per request, work items per page")
    parser.add_argument("--strict-references", action="store_true", default=None,
                        help="Abort on any unresolved reference instead of writing null")
    parser.add_argument("--skip-unknown-events", dest="strict_event_types", action="store_false", default=None,
                        help="Skip events with an unknown type instead of aborting")
    parser.add_argument("--output-dir", help="Directory for the run report")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pharos-migrate",
        description="Migrate Fedora/Solr export data into Pharos",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug output, including HTTP wire logs")
    parser.add_argument("--log-file", help="Log file, appended to (default import.log)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    api_parser = subparsers.add_parser("api", help="Import through the Pharos REST API")
    api_parser.add_argument("api_key", help="Pharos admin API key")
    api_parser.add_argument("--base-url", help="Pharos base URL (default http://localhost:3000)")
    api_parser.add_argument("--api-user", help="Email of the API key's user")
    _add_run_arguments(api_parser)

    sql_parser = subparsers.add_parser("sql", help="Import straight into a Pharos SQLite database")
    sql_parser.add_argument("dest_path", help="Pharos database to write to")
    sql_parser.add_argument("--empty-db", dest="empty_dest_path",
                            help="Empty Pharos database copied to DEST_PATH first")
    _add_run_arguments(sql_parser)

    import_parser = subparsers.add_parser("solr-import", help="Stage Solr wt=ruby dump files into the export db")
    import_parser.add_argument("db", help="Export database")
    import_parser.add_argument("data_dir", help="Directory holding objects.rb, files.rb and events.rb")
    import_parser.add_argument("--types", nargs="+", choices=RECORD_TYPES, default=list(RECORD_TYPES))

    export_parser = subparsers.add_parser("solr-export", help="Stage records read from a live Solr index")
    export_parser.add_argument("db", help="Export database")
    export_parser.add_argument("--solr-url", default="http://localhost:8080/solr/production/select")
    export_parser.add_argument("--types", nargs="+", choices=RECORD_TYPES, default=list(RECORD_TYPES))

    return parser


def build_config(args: argparse.Namespace) -> MigrationConfig:
    """Merge the config file, if any, with command line values."""
    data: Dict[str, Any] = {}
    if args.config:
        with open(args.config) as f:
            data = json.load(f)

    data["destination"] = args.command
    overrides = (
        "api_key", "base_url", "api_user", "dest_path", "empty_dest_path",
        "limit", "offset", "source_path", "batch_size", "strict_references",
        "strict_event_types", "output_dir",
    )
    for name in overrides:
        value = getattr(args, name, None)
        if value is not None:
            data[name] = value
    if args.log_file is not None:
        data["log_file"] = args.log_file
    return MigrationConfig.from_dict(data)


def print_summary(result: MigrationRun) -> None:
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE")
    print("=" * 60)
    print(f"Status: {result.status.value}")
    for step in result.steps:
        print(f"  {step.name}: {step.records_succeeded}/{step.records_processed}"
              f" ({len(step.warnings)} warnings)")
    if result.duration_seconds:
        print(f"Duration: {result.duration_seconds:.2f} seconds")


def run_import(config: MigrationConfig) -> None:
    errors = config.validate()
    if errors:
        raise MigrationError("; ".join(errors))

    result = MigrationOrchestrator(config).run_migration()
    print_summary(result)


def run_solr_import(args: argparse.Namespace) -> None:
    with SourceStore(args.db) as store:
        counts = SolrDumpImporter(store, args.data_dir).copy_all(args.types)
    for record_type, count in counts.items():
        print(f"{record_type}: {count}")


def run_solr_export(args: argparse.Namespace) -> None:
    with SourceStore(args.db) as store:
        counts = SolrExtractor(store, solr_url=args.solr_url).export_all(args.types)
    for record_type, count in counts.items():
        print(f"{record_type}: {count}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "solr-import": run_solr_import,
        "solr-export": run_solr_export,
    }
    try:
        config = None
        if args.command not in commands:
            config = build_config(args)
        configure_logging(args.verbose, config.log_file if config else args.log_file or "import.log")

        if config is not None:
            run_import(config)
        else:
            commands[args.command](args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(130)
    except MigrationError as e:
        logger.error(f"Migration aborted: {e}")
        sys.exit(1)
    except Exception:
        logger.exception("Unhandled error during execution")
        sys.exit(1)


if __name__ == "__main__":
    main()
