"""
Bundle exporter.

Writes the whole entity graph into a new, timestamp-named directory:

    noot-export-{YYYY-MM-DD_HH-MM-SS}/
        manifest.json
        contexts.json, context-links.json, meetings.json
        calendar-accounts.json, calendar-events.json, calendar-rules.json
        config.json                      (when a live config exists)
        notes/{note-id}.md
        attachments/{att-id}-{type}.{ext}

Also produces the human-readable markdown export and single-context
exports, which are one-way and not meant to be imported back.

The store is read in one read scope; everything after that is file I/O.
A missing attachment file is skipped. Any other I/O failure raises
ExportError.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import sqlite3
from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from noot.core.config.models import PathsConfig
from noot.core.store import (
    Attachment,
    AttachmentType,
    CalendarAccount,
    CalendarEvent,
    CalendarSeriesContextRule,
    Context,
    ContextLink,
    Meeting,
    Note,
    NoteContext,
    NoteLink,
    NoteMeeting,
    Record,
    ScreenContext,
    Store,
    fetch_all,
    fetch_one,
)

from .exceptions import ExportError
from .models import (
    ATTACHMENTS_DIRNAME,
    CONFIG_FILENAME,
    MANIFEST_FILENAME,
    NOTES_DIRNAME,
    ExportManifest,
    ExportProgress,
    ExportSnapshot,
    MarkdownExportOptions,
    OrganizeBy,
    ProgressCallback,
)
from .notefile import build_frontmatter, render_note

logger = logging.getLogger(__name__)

INBOX_DIRNAME = "_inbox"
MARKDOWN_ATTACHMENTS_DIRNAME = "_attachments"


def _noop_progress(progress: ExportProgress) -> None:
    pass


def _group_by_note(rows: list[Any]) -> dict[str, list[Any]]:
    grouped: dict[str, list[Any]] = defaultdict(list)
    for row in rows:
        grouped[row.note_id].append(row)
    return grouped


def unique_directory(parent: Path, name: str) -> Path:
    """Return parent/name, suffixed with -2, -3... if it already exists."""
    candidate = parent / name
    n = 2
    while candidate.exists():
        candidate = parent / f"{name}-{n}"
        n += 1
    return candidate


def safe_name(name: str) -> str:
    """Make a context name usable as a directory name."""
    return name.replace("/", "-").replace(":", "-")


def slugify(text: str) -> str:
    slug = text.lower().replace(" ", "-")
    slug = re.sub(r"[^a-z0-9\-]", "", slug)
    return slug[:40].strip("-")


def markdown_filename(note: Note) -> str:
    """`{yyyy-mm-dd}-{slug}.md`, slug from the note's first line or id."""
    title = note.title.strip().replace("#", "").strip()
    slug = slugify(title) if title else ""
    if not slug:
        slug = note.id[:8].lower()
    return f"{note.created_at.strftime('%Y-%m-%d')}-{slug}.md"


class BundleExporter:
    """
    Exports the store to bundles and markdown folders.

    Example:
        >>> exporter = BundleExporter(store, config.paths)
        >>> bundle = exporter.export_full(Path("~/Desktop").expanduser())
        >>> (bundle / "manifest.json").exists()
        True
    """

    def __init__(self, store: Store, paths: PathsConfig, noot_version: str | None = None) -> None:
        self.store = store
        self.paths = paths
        if noot_version is None:
            from noot import __version__

            noot_version = __version__
        self.noot_version = noot_version

    # ------------------------------------------------------------------
    # Full export
    # ------------------------------------------------------------------

    def export_full(self, destination: Path, progress: ProgressCallback | None = None) -> Path:
        """
        Export the whole store into a new bundle under *destination*.

        Args:
            destination: Parent directory for the bundle
            progress: Optional (phase, current, total) callback

        Returns:
            Path to the new bundle directory

        Raises:
            ExportError: On any failure other than a missing attachment file
        """
        report = progress or _noop_progress
        stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

        report(ExportProgress("Reading database", 0, 1))
        try:
            snapshot = self._read_snapshot()
        except sqlite3.Error as e:
            raise ExportError(f"Export failed reading the store: {e}", destination=str(destination)) from e

        try:
            bundle_dir = unique_directory(Path(destination), f"noot-export-{stamp}")
            notes_dir = bundle_dir / NOTES_DIRNAME
            notes_dir.mkdir(parents=True)

            report(ExportProgress("Writing manifest", 1, 4))
            self._write_json(bundle_dir / MANIFEST_FILENAME, self._build_manifest(snapshot).to_document())
            self._write_records(bundle_dir / "contexts.json", snapshot.contexts)
            self._write_records(bundle_dir / "context-links.json", snapshot.context_links)
            self._write_records(bundle_dir / "meetings.json", snapshot.meetings)
            self._write_records(bundle_dir / "calendar-accounts.json", snapshot.calendar_accounts)
            self._write_records(bundle_dir / "calendar-events.json", snapshot.calendar_events)
            self._write_records(bundle_dir / "calendar-rules.json", snapshot.calendar_rules)

            report(ExportProgress("Writing config", 2, 4))
            if self.paths.config_path.exists():
                shutil.copyfile(self.paths.config_path, bundle_dir / CONFIG_FILENAME)

            report(ExportProgress("Exporting notes", 3, 4))
            self._write_notes(notes_dir, snapshot, report)

            if snapshot.attachments:
                self._copy_attachments(bundle_dir / ATTACHMENTS_DIRNAME, snapshot.attachments, report)
        except OSError as e:
            raise ExportError(f"Export failed: {e}", destination=str(destination)) from e

        report(ExportProgress("Complete", 4, 4))
        logger.info("Exported %d notes to %s", len(snapshot.notes), bundle_dir)
        return bundle_dir

    def _read_snapshot(self) -> ExportSnapshot:
        with self.store.read() as conn:
            return ExportSnapshot(
                notes=fetch_all(conn, Note, order_by="created_at"),
                contexts=fetch_all(conn, Context, order_by="created_at"),
                context_links=fetch_all(conn, ContextLink),
                note_contexts=fetch_all(conn, NoteContext, order_by="assigned_at"),
                note_links=fetch_all(conn, NoteLink, order_by="created_at"),
                meetings=fetch_all(conn, Meeting, order_by="started_at"),
                note_meetings=fetch_all(conn, NoteMeeting),
                screen_contexts=fetch_all(conn, ScreenContext, order_by="captured_at"),
                attachments=fetch_all(conn, Attachment, order_by="created_at"),
                calendar_accounts=fetch_all(conn, CalendarAccount),
                calendar_events=fetch_all(conn, CalendarEvent, order_by="start_time"),
                calendar_rules=fetch_all(conn, CalendarSeriesContextRule),
            )

    def _build_manifest(self, snapshot: ExportSnapshot) -> ExportManifest:
        return ExportManifest(
            noot_version=self.noot_version,
            exported_at=datetime.now(timezone.utc),
            note_count=len(snapshot.notes),
            attachment_count=len(snapshot.attachments),
            context_count=len(snapshot.contexts),
            meeting_count=len(snapshot.meetings),
            context_link_count=len(snapshot.context_links),
            note_link_count=len(snapshot.note_links),
            screen_context_count=len(snapshot.screen_contexts),
            calendar_event_count=len(snapshot.calendar_events),
            calendar_account_count=len(snapshot.calendar_accounts),
        )

    def _write_json(self, path: Path, value: Any) -> None:
        path.write_text(json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8")

    def _write_records(self, path: Path, records: Sequence[Record]) -> None:
        self._write_json(path, [record.to_document() for record in records])

    def _write_notes(self, notes_dir: Path, snapshot: ExportSnapshot, report: ProgressCallback) -> None:
        contexts_by_id = {c.id: c for c in snapshot.contexts}
        note_contexts = _group_by_note(snapshot.note_contexts)
        note_meetings = _group_by_note(snapshot.note_meetings)
        screen_contexts = _group_by_note(snapshot.screen_contexts)
        attachments = _group_by_note(snapshot.attachments)
        outgoing_links: dict[str, list[NoteLink]] = defaultdict(list)
        for link in snapshot.note_links:
            outgoing_links[link.source_note_id].append(link)

        total = len(snapshot.notes)
        for index, note in enumerate(snapshot.notes):
            if index % 50 == 0:
                report(ExportProgress("Exporting notes", index, total))

            header = build_frontmatter(
                note,
                note_contexts.get(note.id, []),
                outgoing_links.get(note.id, []),
                note_meetings.get(note.id, []),
                screen_contexts.get(note.id, []),
                attachments.get(note.id, []),
                contexts_by_id,
            )
            (notes_dir / f"{note.id}.md").write_text(render_note(header, note.content), encoding="utf-8")

    def resolve_attachment(self, attachment: Attachment) -> Path:
        """Absolute path of an attachment's file in the live attachment tree."""
        path = Path(attachment.file_path)
        if path.is_absolute():
            return path
        return self.paths.attachments_dir / path

    def _copy_attachments(
        self, attachments_dir: Path, attachments: list[Attachment], report: ProgressCallback
    ) -> None:
        attachments_dir.mkdir(parents=True, exist_ok=True)

        total = len(attachments)
        report(ExportProgress("Copying attachments", 0, total))
        for index, attachment in enumerate(attachments):
            if index % 10 == 0:
                report(ExportProgress("Copying attachments", index, total))

            source = self.resolve_attachment(attachment)
            if not source.exists():
                logger.debug("Attachment %s missing at %s, skipping", attachment.id, source)
                continue
            shutil.copyfile(source, attachments_dir / attachment.bundle_filename)

    # ------------------------------------------------------------------
    # Readable markdown export
    # ------------------------------------------------------------------

    def export_markdown(
        self,
        destination: Path,
        options: MarkdownExportOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> Path:
        """
        Export notes as plain markdown files for reading elsewhere.

        Notes are organized into one folder per first context (untagged
        notes go to `_inbox/`), one folder per month, or a single flat
        folder. Attachments are copied into `_attachments/`.
        """
        options = options or MarkdownExportOptions()
        report = progress or _noop_progress

        report(ExportProgress("Reading database", 0, 1))
        with self.store.read() as conn:
            if options.include_archived:
                notes = fetch_all(conn, Note, order_by="created_at")
            else:
                notes = fetch_all(conn, Note, "archived = ?", (False,), order_by="created_at")
            contexts_by_id = {c.id: c for c in fetch_all(conn, Context)}
            note_contexts = _group_by_note(fetch_all(conn, NoteContext, order_by="assigned_at"))
            attachments = _group_by_note(fetch_all(conn, Attachment, order_by="created_at"))

        stamp = datetime.now().strftime("%Y-%m-%d")
        try:
            export_dir = unique_directory(Path(destination), f"noot-markdown-{stamp}")
            export_dir.mkdir(parents=True)
            attachments_dir = self._markdown_attachments_dir(export_dir, options, attachments)

            total = len(notes)
            for index, note in enumerate(notes):
                if index % 50 == 0:
                    report(ExportProgress("Exporting notes", index, total))
                folder = self._markdown_folder(export_dir, note, options, note_contexts, contexts_by_id)
                self._write_readable_note(folder, note, attachments.get(note.id, []), attachments_dir)
        except OSError as e:
            raise ExportError(f"Markdown export failed: {e}", destination=str(destination)) from e

        report(ExportProgress("Complete", 1, 1))
        return export_dir

    def export_context(
        self,
        context_id: str,
        destination: Path,
        options: MarkdownExportOptions | None = None,
    ) -> Path:
        """
        Export one context's notes as readable markdown.

        Raises:
            ExportError: If the context does not exist or a write fails
        """
        options = options or MarkdownExportOptions()

        with self.store.read() as conn:
            context = fetch_one(conn, Context, context_id)
            if context is None:
                raise ExportError(f"Context not found: {context_id}", context_id=context_id)
            note_ids = {
                nc.note_id for nc in fetch_all(conn, NoteContext, "context_id = ?", (context_id,))
            }
            notes = [n for n in fetch_all(conn, Note, order_by="created_at") if n.id in note_ids]
            if not options.include_archived:
                notes = [n for n in notes if not n.archived]
            attachments = _group_by_note(
                [a for a in fetch_all(conn, Attachment) if a.note_id in note_ids]
            )

        try:
            export_dir = Path(destination) / safe_name(context.name)
            export_dir.mkdir(parents=True, exist_ok=True)
            attachments_dir = self._markdown_attachments_dir(export_dir, options, attachments)
            for note in notes:
                self._write_readable_note(export_dir, note, attachments.get(note.id, []), attachments_dir)
        except OSError as e:
            raise ExportError(f"Context export failed: {e}", destination=str(destination)) from e

        return export_dir

    def _markdown_attachments_dir(
        self,
        export_dir: Path,
        options: MarkdownExportOptions,
        attachments: dict[str, list[Attachment]],
    ) -> Path | None:
        if not options.include_attachments or not attachments:
            return None
        attachments_dir = export_dir / MARKDOWN_ATTACHMENTS_DIRNAME
        attachments_dir.mkdir(parents=True, exist_ok=True)
        return attachments_dir

    def _markdown_folder(
        self,
        export_dir: Path,
        note: Note,
        options: MarkdownExportOptions,
        note_contexts: dict[str, list[NoteContext]],
        contexts_by_id: dict[str, Context],
    ) -> Path:
        if options.organize_by == OrganizeBy.FLAT:
            return export_dir

        if options.organize_by == OrganizeBy.DATE:
            folder = export_dir / note.created_at.strftime("%Y-%m")
        else:
            first = next(iter(note_contexts.get(note.id, [])), None)
            context = contexts_by_id.get(first.context_id) if first else None
            folder = export_dir / (safe_name(context.name) if context else INBOX_DIRNAME)

        folder.mkdir(parents=True, exist_ok=True)
        return folder

    def _write_readable_note(
        self,
        folder: Path,
        note: Note,
        attachments: list[Attachment],
        attachments_dir: Path | None,
    ) -> None:
        (folder / markdown_filename(note)).write_text(
            readable_markdown(note, attachments), encoding="utf-8"
        )
        if attachments_dir is None:
            return
        for attachment in attachments:
            source = self.resolve_attachment(attachment)
            if not source.exists():
                logger.debug("Attachment %s missing at %s, skipping", attachment.id, source)
                continue
            shutil.copyfile(source, attachments_dir / f"{attachment.id}.{attachment.extension}")


def readable_markdown(note: Note, attachments: list[Attachment]) -> str:
    """Note body with an Attachments section appended when it has any."""
    if not attachments:
        return note.content

    lines = [note.content, "", "---", "", "## Attachments", ""]
    for attachment in attachments:
        target = f"{MARKDOWN_ATTACHMENTS_DIRNAME}/{attachment.id}.{attachment.extension}"
        if attachment.type == AttachmentType.SCREENSHOT:
            lines.append(f"![Screenshot]({target})")
            continue
        label = "Screen Recording" if attachment.type == AttachmentType.SCREEN_RECORDING else "Audio Recording"
        line = f"- [{label}]({target})"
        if duration := attachment.formatted_duration:
            line += f" ({duration})"
        lines.append(line)
    return "\n".join(lines) + "\n"
