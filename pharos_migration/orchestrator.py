"""Migration orchestrator - runs the import phases in dependency order."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .exceptions import DestinationError, IdentifierConflictError
from .extractors import queries
from .extractors.base import SourceStore
from .loaders.base import BaseLoader
from .loaders.api_loader import PharosAPILoader
from .loaders.sql_loader import SQLLoader
from .models.identifier_map import IdentifierMap
from .models.migration import (
    DestinationType,
    MigrationConfig,
    MigrationRun,
    MigrationStatus,
    MigrationStep,
)
from .transformer import (
    MigrationContext,
    build_checksum,
    build_events,
    build_file,
    build_institution,
    build_object,
    build_user,
    build_work_item,
    build_work_item_state,
)

logger = logging.getLogger(__name__)


def create_loader(config: MigrationConfig) -> BaseLoader:
    """Create the loader for the configured destination."""
    if config.destination == DestinationType.API:
        return PharosAPILoader(
            base_url=config.base_url,
            api_key=config.api_key or "",
            api_user=config.api_user,
            verify_ssl=config.verify_ssl,
            timeout=config.timeout,
        )
    return SQLLoader(config.dest_path, empty_dest_path=config.empty_dest_path)


class MigrationOrchestrator:
    """
    Runs a Fedora to Pharos migration.

    Phases run strictly in order, because every phase resolves references
    through ids the previous ones recorded:
    1. institutions (and users, where the destination takes them)
    2. intellectual objects, each followed by its own events and files
    3. generic files, with their checksums and events
    4. work items and their states

    The first error a destination reports stops the run. Records written
    before it stay written; the run report is saved either way.
    """

    def __init__(
        self,
        config: MigrationConfig,
        source: Optional[SourceStore] = None,
        loader: Optional[BaseLoader] = None,
        id_map: Optional[IdentifierMap] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            source: Open source store (opened from config.source_path if omitted)
            loader: Destination loader (created from config if omitted)
            id_map: Identifier map to fill in (a fresh one if omitted)
        """
        self.config = config
        self._owns_source = source is None
        self._owns_loader = loader is None
        self.source = source
        self.loader = loader
        self.id_map = id_map if id_map is not None else IdentifierMap()
        self.run: Optional[MigrationRun] = None
        self.ctx: Optional[MigrationContext] = None

        self.logs_dir = Path(config.output_dir) / "logs"

    def run_migration(self) -> MigrationRun:
        """
        Run the complete migration.

        Returns:
            MigrationRun with results and statistics

        Raises:
            MigrationError: the run was aborted; the report is still saved
        """
        self.run = MigrationRun(
            destination=self.config.destination.value,
            limit=self.config.limit,
            offset=self.config.offset,
        )
        self.run.metadata["config"] = self.config.to_dict()
        self.run.started_at = datetime.utcnow()

        try:
            if self.source is None:
                self.source = SourceStore(self.config.source_path)
            if self.loader is None:
                self.loader = create_loader(self.config)
            if not self.loader.validate_connection():
                raise DestinationError("Failed to connect to Pharos")
            self.ctx = MigrationContext(
                config=self.config,
                store=self.source,
                loader=self.loader,
                id_map=self.id_map,
            )

            if self.config.create_indexes:
                self.source.create_indexes()

            logger.info("=== PHASE 1: INSTITUTIONS ===")
            self.run.status = MigrationStatus.LOADING_INSTITUTIONS
            self._load_institutions()
            if self.config.import_users:
                self._import_users()

            logger.info("=== PHASE 2: OBJECTS, EVENTS AND FILES ===")
            self.run.status = MigrationStatus.IMPORTING_OBJECTS
            self._import_objects()

            logger.info("=== PHASE 3: WORK ITEMS ===")
            self.run.status = MigrationStatus.IMPORTING_WORK_ITEMS
            self._import_work_items()

            self.run.status = MigrationStatus.COMPLETED
            logger.info("=== MIGRATION COMPLETED ===")

        except Exception as e:
            if isinstance(e, DestinationError):
                logger.error(f"{e}\n\n{e.body}")
                error = e.to_dict()
            else:
                logger.error(f"Migration failed: {e}")
                error = {"error": str(e)}
            error["phase"] = self.run.status.value
            error["timestamp"] = datetime.utcnow().isoformat()
            self.run.errors.append(error)
            self.run.status = MigrationStatus.FAILED
            raise

        finally:
            self.run.completed_at = datetime.utcnow()
            self.run.update_totals()
            if self.loader is not None:
                self.run.metadata["written"] = self.loader.get_counts()
            self.run.metadata["identifiers_mapped"] = self.id_map.to_dict()
            if self.config.save_report:
                self._save_report()
            self._close()

        return self.run

    def _start_step(self, name: str, entity: str) -> MigrationStep:
        step = self.run.add_step(name=name, entity=entity)
        step.status = self.run.status
        step.started_at = datetime.utcnow()
        self.run.current_step = step.id
        self.ctx.step = step
        return step

    def _run_step(self, step: MigrationStep, phase) -> None:
        """Run one phase, marking its step completed or failed."""
        try:
            phase(step)
            step.status = MigrationStatus.COMPLETED
            logger.info(
                f"{step.name}: {step.records_succeeded} written, "
                f"{step.records_skipped} skipped, {len(step.warnings)} warnings"
            )
        except Exception as e:
            step.status = MigrationStatus.FAILED
            step.records_failed += 1
            step.errors.append({"error": str(e)})
            raise
        finally:
            step.completed_at = datetime.utcnow()

    def _load_institutions(self) -> None:
        step = self._start_step("Load institutions", "institutions")
        self._run_step(step, self._institution_phase)

    def _institution_phase(self, step: MigrationStep) -> None:
        rows = queries.institutions(self.source)
        institutions = []
        seen = {}
        for row in rows:
            if row["identifier"] in seen:
                raise IdentifierConflictError(
                    f"Institutions {seen[row['identifier']]} and {row['id']} share identifier {row['identifier']}"
                )
            seen[row["identifier"]] = row["id"]
            # Every institution gets a name, so work items can find it even
            # when the destination lacks it.
            self.id_map.put_name(row["id"], row["identifier"])
            institutions.append(build_institution(row))
        step.records_processed = len(rows)

        found = self.loader.register_institutions(institutions)
        for row in rows:
            new_id = found.get(row["identifier"])
            if new_id is None:
                step.records_skipped += 1
                step.warnings.append(f"Institution {row['identifier']} not found in destination")
                continue
            self.id_map.put(row["id"], new_id)
            self.id_map.put_by_name(row["identifier"], new_id)
            step.records_succeeded += 1

    def _import_users(self) -> None:
        step = self._start_step("Import users", "users")
        self._run_step(step, self._user_phase)

    def _user_phase(self, step: MigrationStep) -> None:
        users = [build_user(row, self.ctx) for row in queries.users(self.source)]
        step.records_processed = len(users)
        step.records_succeeded = self.loader.create_users(users)
        step.records_skipped = len(users) - step.records_succeeded

    def _import_objects(self) -> None:
        step = self._start_step("Import objects, events and files", "intellectual_objects")
        self._run_step(step, self._object_phase)

    def _object_phase(self, step: MigrationStep) -> None:
        rows = queries.intellectual_objects(self.source, self.config.limit, self.config.offset)
        for row in rows:
            step.records_processed += 1
            obj = build_object(row, self.ctx)
            institution = self.id_map.name_of(row["institution_id"])
            new_id = self.loader.create_object(obj, institution)
            self.id_map.put(row["id"], new_id)
            self.id_map.put_by_name(obj.identifier, new_id)
            step.records_succeeded += 1
            logger.info(f"Saved object {obj.identifier} with id {new_id}")

            self._import_object_events(row["id"], obj.identifier)
            self._import_files(row["id"], obj.identifier)

    def _import_object_events(self, object_pid: str, object_identifier: str) -> None:
        """Events recorded against the object itself."""
        rows = queries.object_events(self.source, object_pid)
        events = build_events(rows, self.ctx, object_identifier)
        if events:
            self.loader.create_events(events)
            logger.debug(f"Saved {len(events)} events for object {object_identifier}")

    def _import_files(self, object_pid: str, object_identifier: str) -> None:
        """
        An object's files. Destinations that nest sub-records get batches
        of files carrying their checksums and events; the others get all of
        the object's files at once, then each file's events and checksums.
        """
        nested = self.loader.nests_file_records
        object_id = self.ctx.resolve("generic file", "intellectual_object_id", object_pid, required=True)

        if nested:
            batches = queries.generic_file_batches(self.source, object_pid, self.config.batch_size)
        else:
            batches = iter([queries.generic_files(self.source, object_pid)])

        for rows in batches:
            if not rows:
                continue
            files = [build_file(row, self.ctx, object_identifier, nested=nested) for row in rows]
            new_ids = self.loader.create_files(files, object_id)
            self._record_file_ids(rows, new_ids)
            logger.info(f"Saved {len(files)} files for object {object_identifier}")

            if not nested:
                for row, new_id in zip(rows, new_ids):
                    self._import_file_children(row["id"], new_id, object_identifier)

    def _record_file_ids(self, rows: List, new_ids: List[Optional[int]]) -> None:
        for row, new_id in zip(rows, new_ids):
            if new_id is None:
                logger.debug(f"No id reported for file {row['identifier']}")
                continue
            self.id_map.put(row["id"], new_id)
            self.id_map.put_by_name(row["identifier"], new_id)

    def _import_file_children(self, file_pid: str, file_id: int, object_identifier: str) -> None:
        events = build_events(queries.file_events(self.source, file_pid), self.ctx, object_identifier)
        if events:
            self.loader.create_events(events)
        checksums = [build_checksum(row, file_id) for row in queries.checksums(self.source, file_pid)]
        if checksums:
            self.loader.create_checksums(checksums)

    def _import_work_items(self) -> None:
        step = self._start_step("Import work items", "work_items")
        self._run_step(step, self._work_item_phase)

    def _work_item_phase(self, step: MigrationStep) -> None:
        batches = queries.work_item_batches(
            self.source,
            limit=self.config.limit,
            offset=self.config.offset,
            batch_size=self.config.batch_size,
        )
        for rows in batches:
            for row in rows:
                step.records_processed += 1
                item = build_work_item(row, self.ctx)
                item_id = self.loader.create_work_item(item)
                step.records_succeeded += 1

                state = build_work_item_state(row, item_id)
                if state is not None:
                    self.loader.create_work_item_state(state)
            logger.info(f"Saved {step.records_succeeded} work items")

    def _save_report(self) -> None:
        """Save the migration report."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.logs_dir / f"migration_report_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.json"
        with open(filepath, "w") as f:
            json.dump(self.run.to_dict(), f, indent=2, default=str)
        logger.info(f"Saved migration report to {filepath}")

    def _close(self) -> None:
        if self._owns_loader and self.loader is not None:
            self.loader.close()
        if self._owns_source and self.source is not None:
            self.source.close()


def run_migration(config: MigrationConfig) -> MigrationRun:
    """Run a migration with a source and loader built from ``config``."""
    return MigrationOrchestrator(config).run_migration()
