"""
Import a loose folder of markdown files (not a bundle).

Every .md file becomes a new note with a fresh id. The top-level folder a
file sits in names its context; contexts are matched by exact name and
created as workstreams when missing. Folders whose name starts with "_"
never name a context. Local images referenced as ![alt](path) are copied
in as screenshot attachments, best-effort.
"""

from __future__ import annotations

import logging
import re
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from noot.core.config.models import PathsConfig
from noot.core.store import (
    Attachment,
    AttachmentType,
    Context,
    ContextType,
    InsertResult,
    Note,
    NoteContext,
    Store,
    fetch_all,
    insert,
    insert_if_absent,
    new_id,
    utc_now,
)

from .models import ImportProgress, ImportReport, MarkdownImportOptions, ProgressCallback
from .notefile import split_note

logger = logging.getLogger(__name__)

IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")

_datetime_adapter = TypeAdapter(datetime)


def _noop_progress(progress: ImportProgress) -> None:
    pass


def folder_context_name(root: Path, path: Path) -> str | None:
    """Name of the top-level folder *path* sits in, or None at the root or under `_*`."""
    relative = path.parent.relative_to(root)
    if not relative.parts or relative.parts[0].startswith("_"):
        return None
    return relative.parts[0]


def _header_datetime(header: dict[str, Any], key: str) -> datetime | None:
    value = header.get(key)
    if value is None:
        return None
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        return None


class MarkdownImporter:
    """Imports folders of plain markdown notes."""

    def __init__(self, store: Store, paths: PathsConfig) -> None:
        self.store = store
        self.paths = paths

    def import_markdown(
        self,
        folder: Path,
        options: MarkdownImportOptions | None = None,
        progress: ProgressCallback | None = None,
    ) -> ImportReport:
        """
        Import every markdown file under *folder*.

        Args:
            folder: Root folder to scan recursively
            options: Context, frontmatter and image handling
            progress: Optional (phase, current, total) callback

        Returns:
            Report with note, context and attachment counts
        """
        folder = Path(folder)
        options = options or MarkdownImportOptions()
        report_progress = progress or _noop_progress
        report = ImportReport()

        report_progress(ImportProgress("Scanning files", 0, 1))
        files: list[tuple[Path, str | None]] = []
        for path in sorted(folder.rglob("*.md")):
            context_name = folder_context_name(folder, path) if options.create_contexts_from_folders else None
            files.append((path, context_name))

        context_ids = self._resolve_contexts({name for _, name in files if name}, report)

        total = len(files)
        report_progress(ImportProgress("Importing notes", 0, total))
        for index, (path, context_name) in enumerate(files):
            if index % 20 == 0:
                report_progress(ImportProgress("Importing notes", index, total))

            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read %s: %s", path, e)
                report.skip("note", path.name, "unreadable file")
                continue

            note = self._build_note(text, options.parse_frontmatter)
            context_id = context_ids.get(context_name) if context_name else options.target_context

            with self.store.write() as conn:
                insert(conn, note)
                if context_id and (
                    insert_if_absent(conn, NoteContext(note_id=note.id, context_id=context_id))
                    == InsertResult.FAILED
                ):
                    report.warnings.append(f"Could not assign {path.name} to context {context_id}")
            report.notes_imported += 1

            if options.import_images:
                report.attachments_imported += self._import_images(note, path.parent)

        report_progress(ImportProgress("Complete", total, total))
        return report

    def _resolve_contexts(self, names: set[str], report: ImportReport) -> dict[str, str]:
        context_ids: dict[str, str] = {}
        for name in sorted(names):
            with self.store.write() as conn:
                existing = fetch_all(conn, Context, "name = ?", (name,))
                if existing:
                    context_ids[name] = existing[0].id
                    continue
                context = Context(name=name, type=ContextType.WORKSTREAM)
                insert(conn, context)
            context_ids[name] = context.id
            report.contexts_imported += 1
        return context_ids

    def _build_note(self, text: str, parse_frontmatter: bool) -> Note:
        content = text
        created_at = updated_at = None

        if parse_frontmatter:
            try:
                header, content = split_note(text)
            except yaml.YAMLError as e:
                logger.debug("Ignoring unreadable frontmatter: %s", e)
                header = None
            if header:
                created_at = _header_datetime(header, "createdAt")
                updated_at = _header_datetime(header, "updatedAt")

        now = utc_now()
        return Note(content=content, created_at=created_at or now, updated_at=updated_at or now)

    def _import_images(self, note: Note, base_dir: Path) -> int:
        count = 0
        screenshots_dir = self.paths.attachments_dir / AttachmentType.SCREENSHOT.subdirectory

        for match in IMAGE_PATTERN.finditer(note.content):
            reference = match.group(2).strip()
            if reference.startswith(("http://", "https://")):
                continue

            source = base_dir / reference
            if not source.is_file():
                continue

            attachment_id = new_id()
            dest_name = f"{attachment_id}{source.suffix}"
            try:
                screenshots_dir.mkdir(parents=True, exist_ok=True)
                dest = screenshots_dir / dest_name
                shutil.copyfile(source, dest)
                attachment = Attachment(
                    id=attachment_id,
                    note_id=note.id,
                    type=AttachmentType.SCREENSHOT,
                    file_path=f"{AttachmentType.SCREENSHOT.subdirectory}/{dest_name}",
                    file_size=dest.stat().st_size,
                )
                with self.store.write() as conn:
                    insert(conn, attachment)
            except (OSError, sqlite3.Error) as e:
                logger.debug("Skipping image %s: %s", reference, e)
                continue
            count += 1

        return count
