"""
Bundle importer.

Reads a bundle back into entities and commits them under one of two
policies:

- merge: insert entities whose id is absent, record the rest as skipped
  with reason "already exists". Join rows are best-effort. Each entity
  stands alone, so partial success is normal and reported.
- replace: refuse on any invalid record or dangling reference, export the
  current store to the backups directory, then clear every entity table and
  load the bundle inside one write transaction. Any failure rolls the whole
  thing back.

Attachment files are copied into the live attachment tree after the
database phase, each one independently of its note.
"""

from __future__ import annotations

import json
import logging
import shutil
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from noot.core.config.models import PathsConfig
from noot.core.store import (
    ENTITY_TABLES,
    Attachment,
    AttachmentType,
    CalendarAccount,
    CalendarEvent,
    CalendarSeriesContextRule,
    Context,
    ContextLink,
    InsertResult,
    Meeting,
    Note,
    NoteContext,
    NoteLink,
    NoteLinkRelationship,
    NoteMeeting,
    Record,
    ScreenContext,
    ScreenContextSourceType,
    Store,
    TableGraph,
    delete_all,
    exists,
    insert_if_absent,
)

from .exceptions import IntegrityError, InvalidBundleError, NoteParseError, ReplaceImportError
from .exporter import BundleExporter
from .migration import migrate, migration_description, migration_warnings
from .models import (
    ATTACHMENTS_DIRNAME,
    CONFIG_FILENAME,
    MANIFEST_FILENAME,
    NOTES_DIRNAME,
    BundleGraph,
    ExportManifest,
    ImportMode,
    ImportPreview,
    ImportProgress,
    ImportReport,
    ProgressCallback,
)
from .notefile import is_valid_id, read_note_file
from .validation import validate

logger = logging.getLogger(__name__)

REASON_ALREADY_EXISTS = "already exists"
REASON_INVALID_RECORD = "invalid record"
REASON_UNREADABLE = "unreadable file"

# Tables whose rows are counted and named in the report
REPORTED_TABLES = {
    "notes": ("note", "notes_imported"),
    "contexts": ("context", "contexts_imported"),
    "meetings": ("meeting", "meetings_imported"),
}


def _noop_progress(progress: ImportProgress) -> None:
    pass


def _display_name(record: Record) -> str:
    if isinstance(record, Note):
        return record.content[:50]
    if isinstance(record, Context):
        return record.name
    if isinstance(record, Meeting):
        return record.title or "Untitled"
    return str(record.key())


def _graph_rows(graph: BundleGraph) -> dict[str, Sequence[Record]]:
    return {
        "notes": graph.notes,
        "contexts": graph.contexts,
        "context_links": graph.context_links,
        "note_contexts": graph.note_contexts,
        "note_links": graph.note_links,
        "meetings": graph.meetings,
        "note_meetings": graph.note_meetings,
        "screen_contexts": graph.screen_contexts,
        "calendar_accounts": graph.calendar_accounts,
        "calendar_events": graph.calendar_events,
        "calendar_series_context_rules": graph.calendar_rules,
    }


class BundleImporter:
    """
    Imports bundles into the store.

    Example:
        >>> importer = BundleImporter(store, config.paths)
        >>> preview = importer.validate_bundle(bundle_dir)
        >>> if preview.is_valid:
        ...     report = importer.import_bundle(bundle_dir, ImportMode.MERGE)
    """

    def __init__(
        self,
        store: Store,
        paths: PathsConfig,
        exporter: BundleExporter | None = None,
        graph: TableGraph | None = None,
    ) -> None:
        self.store = store
        self.paths = paths
        self.exporter = exporter or BundleExporter(store, paths)
        self.graph = graph or TableGraph()

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def validate_bundle(self, bundle_dir: Path) -> ImportPreview:
        """
        Inspect a bundle without importing it.

        Never raises for a bad bundle; `is_valid` is False and the first
        warning says why.
        """
        bundle_dir = Path(bundle_dir)
        if not bundle_dir.is_dir():
            return ImportPreview(is_valid=False, warnings=["Not a valid directory"])

        manifest_path = bundle_dir / MANIFEST_FILENAME
        if not manifest_path.exists():
            return ImportPreview(is_valid=False, warnings=["manifest.json not found"])

        try:
            manifest = self._read_manifest(manifest_path)
        except (OSError, ValueError, ValidationError) as e:
            return ImportPreview(is_valid=False, warnings=[f"Invalid manifest: {e}"])

        warnings = migration_warnings(manifest.schema_version)
        if not (bundle_dir / NOTES_DIRNAME).is_dir():
            warnings.append("Notes directory not found")
        if manifest.attachment_count > 0 and not (bundle_dir / ATTACHMENTS_DIRNAME).is_dir():
            warnings.append(
                f"Attachments directory not found but {manifest.attachment_count} attachments expected"
            )

        return ImportPreview(
            is_valid=True,
            schema_version=manifest.schema_version,
            note_count=manifest.note_count,
            context_count=manifest.context_count,
            meeting_count=manifest.meeting_count,
            attachment_count=manifest.attachment_count,
            warnings=warnings,
            manifest=manifest,
            migration_description=migration_description(manifest.schema_version),
        )

    def _read_manifest(self, path: Path) -> ExportManifest:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("manifest is not a JSON object")
        version = raw.get("schemaVersion", 0)
        if not isinstance(version, int):
            raise ValueError(f"schemaVersion is not an integer: {version!r}")
        raw = migrate(raw, version)
        raw.setdefault("schemaVersion", version)
        return ExportManifest.model_validate(raw)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def import_bundle(
        self,
        bundle_dir: Path,
        mode: ImportMode = ImportMode.MERGE,
        progress: ProgressCallback | None = None,
    ) -> ImportReport:
        """
        Import a bundle.

        Args:
            bundle_dir: Bundle directory
            mode: MERGE or REPLACE
            progress: Optional (phase, current, total) callback

        Returns:
            Report with counts, skipped items and warnings

        Raises:
            InvalidBundleError: Not a bundle, or a replace over a bundle with
                records that fail validation; nothing was touched
            IntegrityError: Replace refused, bundle has dangling references
            ExportError: Replace refused, the safety backup failed
            ReplaceImportError: Replace rolled back
        """
        bundle_dir = Path(bundle_dir)
        report_progress = progress or _noop_progress
        report = ImportReport()

        preview = self.validate_bundle(bundle_dir)
        if not preview.is_valid or preview.manifest is None:
            reason = preview.warnings[0] if preview.warnings else "unknown error"
            raise InvalidBundleError(bundle_dir, reason)
        report.warnings.extend(preview.warnings)
        schema_version = preview.schema_version

        report_progress(ImportProgress("Reading export data", 0, 5))
        graph = BundleGraph()
        invalid = self._read_collections(bundle_dir, graph)
        if invalid and mode == ImportMode.REPLACE:
            item_type, name, filename = invalid[0]
            raise InvalidBundleError(
                bundle_dir, f"{len(invalid)} invalid record(s), first: {item_type} {name} in {filename}"
            )
        for item_type, name, _ in invalid:
            report.skip(item_type, name, REASON_INVALID_RECORD)

        report_progress(ImportProgress("Reading notes", 1, 5))
        self._read_notes(bundle_dir / NOTES_DIRNAME, schema_version, graph, report)

        report_progress(ImportProgress("Importing data", 2, 5))
        if mode == ImportMode.REPLACE:
            self._replace(graph, report)
        else:
            self._merge(graph, report)

        report_progress(ImportProgress("Copying attachments", 3, 5))
        self._import_attachments(bundle_dir / ATTACHMENTS_DIRNAME, graph, report)

        report_progress(ImportProgress("Finalizing", 4, 5))
        if mode == ImportMode.REPLACE:
            self._restore_config(bundle_dir / CONFIG_FILENAME, report)

        report_progress(ImportProgress("Complete", 5, 5))
        logger.info(
            "Imported %d notes, %d contexts, %d meetings, %d attachments (%s, %d skipped)",
            report.notes_imported,
            report.contexts_imported,
            report.meetings_imported,
            report.attachments_imported,
            mode.value,
            len(report.skipped),
        )
        return report

    def _read_collection(
        self,
        path: Path,
        record_type: type[Record],
        item_type: str,
        invalid: list[tuple[str, str, str]],
    ) -> list[Any]:
        if not path.exists():
            return []
        try:
            documents = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise InvalidBundleError(path.parent, f"{path.name} is not readable JSON: {e}") from e
        if not isinstance(documents, list):
            raise InvalidBundleError(path.parent, f"{path.name} is not a JSON array")

        records = []
        for document in documents:
            try:
                records.append(record_type.model_validate(document))
            except ValidationError as e:
                logger.warning("Invalid %s record in %s: %s", item_type, path.name, e)
                name = document.get("id", "?") if isinstance(document, dict) else "?"
                invalid.append((item_type, str(name), path.name))
        return records

    def _read_collections(self, bundle_dir: Path, graph: BundleGraph) -> list[tuple[str, str, str]]:
        """
        Decode the JSON collections into `graph`.

        Returns:
            (item type, id, filename) for each record that failed validation
        """
        invalid: list[tuple[str, str, str]] = []
        graph.contexts = self._read_collection(bundle_dir / "contexts.json", Context, "context", invalid)
        graph.context_links = self._read_collection(
            bundle_dir / "context-links.json", ContextLink, "context link", invalid
        )
        graph.meetings = self._read_collection(bundle_dir / "meetings.json", Meeting, "meeting", invalid)
        graph.calendar_accounts = self._read_collection(
            bundle_dir / "calendar-accounts.json", CalendarAccount, "calendar account", invalid
        )
        graph.calendar_events = self._read_collection(
            bundle_dir / "calendar-events.json", CalendarEvent, "calendar event", invalid
        )
        graph.calendar_rules = self._read_collection(
            bundle_dir / "calendar-rules.json", CalendarSeriesContextRule, "calendar rule", invalid
        )
        return invalid

    def _read_notes(
        self, notes_dir: Path, schema_version: int, graph: BundleGraph, report: ImportReport
    ) -> None:
        if not notes_dir.is_dir():
            return

        for path in sorted(notes_dir.glob("*.md")):
            try:
                header, body = read_note_file(path, schema_version)
            except NoteParseError as e:
                report.skip("note", e.filename, e.reason)
                continue
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read %s: %s", path, e)
                report.skip("note", path.name, REASON_UNREADABLE)
                continue

            note = Note(
                id=header.id,
                content=body,
                created_at=header.created_at,
                updated_at=header.updated_at,
                closed_at=header.closed_at,
                archived=header.archived,
            )
            graph.notes.append(note)

            for ref in header.contexts or []:
                if is_valid_id(ref.id):
                    graph.note_contexts.append(NoteContext(note_id=note.id, context_id=ref.id))

            for link in header.links or []:
                if not is_valid_id(link.target_id):
                    continue
                try:
                    relationship = NoteLinkRelationship(link.relationship)
                except ValueError:
                    logger.debug("Unknown link relationship %r in %s", link.relationship, path.name)
                    continue
                graph.note_links.append(
                    NoteLink(source_note_id=note.id, target_note_id=link.target_id, relationship=relationship)
                )

            if header.meeting_id and is_valid_id(header.meeting_id):
                graph.note_meetings.append(NoteMeeting(note_id=note.id, meeting_id=header.meeting_id))

            if (sc := header.screen_context) is not None:
                try:
                    source_type = ScreenContextSourceType(sc.source_type)
                except ValueError:
                    logger.debug("Unknown screen context source %r in %s", sc.source_type, path.name)
                else:
                    fields: dict[str, Any] = {}
                    if sc.id and is_valid_id(sc.id):
                        fields["id"] = sc.id
                    graph.screen_contexts.append(
                        ScreenContext(
                            note_id=note.id,
                            source_type=source_type,
                            app_name=sc.app_name,
                            url=sc.url,
                            file_path=sc.file_path,
                            line_start=sc.line_start,
                            line_end=sc.line_end,
                            git_repo=sc.git_repo,
                            git_branch=sc.git_branch,
                            captured_at=sc.captured_at or note.created_at,
                            **fields,
                        )
                    )

            for ref in header.attachments or []:
                graph.attachment_refs.append((note.id, ref))

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    def _merge(self, graph: BundleGraph, report: ImportReport) -> None:
        for violation in validate(graph):
            logger.warning("Bundle integrity: %s", violation)
            report.warnings.append(violation)

        rows = _graph_rows(graph)
        inserted_notes: set[str] = set()

        with self.store.write() as conn:
            for table in self.graph.insertion_order(rows):
                records = rows[table]
                if table == "screen_contexts":
                    # Existing notes keep their own capture metadata
                    records = [sc for sc in records if sc.note_id in inserted_notes]
                item_type, counter = REPORTED_TABLES.get(table, (None, None))

                for record in records:
                    if item_type and exists(conn, type(record), *record.key()):
                        report.skip(item_type, _display_name(record), REASON_ALREADY_EXISTS)
                        continue

                    result = insert_if_absent(conn, record)
                    if result == InsertResult.FAILED:
                        report.warnings.append(f"Could not import {table} row {record.key()}")
                    elif result == InsertResult.INSERTED and counter:
                        setattr(report, counter, getattr(report, counter) + 1)
                        if table == "notes":
                            inserted_notes.add(record.key()[0])

    def _replace(self, graph: BundleGraph, report: ImportReport) -> None:
        violations = validate(graph)
        if violations:
            raise IntegrityError(violations)

        self.paths.backups_dir.mkdir(parents=True, exist_ok=True)
        backup_path = self.exporter.export_full(self.paths.backups_dir)
        report.backup_path = str(backup_path)
        logger.info("Backed up current store to %s", backup_path)

        rows = _graph_rows(graph)
        inserted = dict.fromkeys(REPORTED_TABLES, 0)
        try:
            with self.store.write() as conn:
                for table in self.graph.deletion_order(ENTITY_TABLES):
                    delete_all(conn, table)

                for table in self.graph.insertion_order(rows):
                    for record in rows[table]:
                        result = insert_if_absent(conn, record)
                        if result == InsertResult.FAILED:
                            raise ReplaceImportError(
                                f"Could not insert {table} row {record.key()}",
                                backup_path=backup_path,
                                table=table,
                            )
                        if result == InsertResult.INSERTED and table in inserted:
                            inserted[table] += 1
        except sqlite3.Error as e:
            raise ReplaceImportError(f"Replace import failed: {e}", backup_path=backup_path) from e

        for table, (_, counter) in REPORTED_TABLES.items():
            setattr(report, counter, inserted[table])

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def _import_attachments(self, source_dir: Path, graph: BundleGraph, report: ImportReport) -> None:
        if not source_dir.is_dir() or not graph.attachment_refs:
            return

        attachments: list[Attachment] = []
        for note_id, ref in graph.attachment_refs:
            if not is_valid_id(ref.id):
                continue
            try:
                attachment_type = AttachmentType(ref.type)
            except ValueError:
                continue

            source = source_dir / ref.filename
            if not source.exists():
                logger.debug("Attachment file %s not in bundle, skipping", ref.filename)
                continue

            subdir = attachment_type.subdirectory
            dest_name = f"{ref.id}{source.suffix}"
            dest = self.paths.attachments_dir / subdir / dest_name
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                if not dest.exists():
                    shutil.copyfile(source, dest)
                file_size = dest.stat().st_size
            except OSError as e:
                logger.warning("Could not copy attachment %s: %s", ref.filename, e)
                report.warnings.append(f"Could not copy attachment {ref.filename}")
                continue

            attachments.append(
                Attachment(
                    id=ref.id,
                    note_id=note_id,
                    type=attachment_type,
                    file_path=f"{subdir}/{dest_name}",
                    file_size=file_size,
                    duration_seconds=ref.duration_seconds,
                )
            )

        with self.store.write() as conn:
            for attachment in attachments:
                result = insert_if_absent(conn, attachment)
                if result == InsertResult.INSERTED:
                    report.attachments_imported += 1
                elif result == InsertResult.FAILED:
                    report.warnings.append(f"Could not import attachment {attachment.id}")

    def _restore_config(self, source: Path, report: ImportReport) -> None:
        if not source.exists():
            return
        try:
            self.paths.config_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, self.paths.config_path)
        except OSError as e:
            logger.warning("Could not restore configuration: %s", e)
            report.warnings.append(f"Could not restore configuration: {e}")
