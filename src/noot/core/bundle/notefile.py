"""
Note files: YAML frontmatter plus the note body.

Uses python-frontmatter, the same way captures are stored as Markdown with
a YAML header. Bundle notes carry the join rows of their note (context
refs, outgoing links, meeting, screen context, attachment refs) in the
header so a bundle is readable one file at a time.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import frontmatter
import yaml
from pydantic import ValidationError

from noot.core.store.models import (
    Attachment,
    Context,
    Note,
    NoteContext,
    NoteLink,
    NoteMeeting,
    ScreenContext,
)

from .exceptions import NoteParseError
from .migration import migrate_frontmatter
from .models import (
    AttachmentRef,
    ContextRef,
    LinkRef,
    NoteFrontmatter,
    ScreenContextRef,
)

logger = logging.getLogger(__name__)

REASON_NO_FRONTMATTER = "no frontmatter"
REASON_INVALID_FRONTMATTER = "invalid frontmatter"
REASON_INVALID_ID = "invalid id"


def build_frontmatter(
    note: Note,
    note_contexts: Iterable[NoteContext],
    note_links: Iterable[NoteLink],
    note_meetings: Iterable[NoteMeeting],
    screen_contexts: Iterable[ScreenContext],
    attachments: Iterable[Attachment],
    contexts_by_id: dict[str, Context],
) -> NoteFrontmatter:
    """
    Assemble the header for one note from its join rows.

    Only the first meeting and the first screen context are carried.
    A context assignment whose context no longer exists is dropped.
    """
    context_refs = [
        ContextRef(id=nc.context_id, name=contexts_by_id[nc.context_id].name)
        for nc in note_contexts
        if nc.context_id in contexts_by_id
    ]
    link_refs = [
        LinkRef(target_id=link.target_note_id, relationship=link.relationship.value)
        for link in note_links
    ]
    attachment_refs = [
        AttachmentRef(
            id=att.id,
            type=att.type.value,
            filename=att.bundle_filename,
            file_size=att.file_size,
            duration_seconds=att.duration_seconds,
        )
        for att in attachments
    ]

    meeting_id = next((nm.meeting_id for nm in note_meetings), None)

    screen_ref = None
    if sc := next(iter(screen_contexts), None):
        screen_ref = ScreenContextRef(
            id=sc.id,
            source_type=sc.source_type.value,
            app_name=sc.app_name,
            url=sc.url,
            file_path=sc.file_path,
            line_start=sc.line_start,
            line_end=sc.line_end,
            git_repo=sc.git_repo,
            git_branch=sc.git_branch,
            captured_at=sc.captured_at,
        )

    return NoteFrontmatter(
        id=note.id,
        created_at=note.created_at,
        updated_at=note.updated_at,
        closed_at=note.closed_at,
        archived=note.archived,
        contexts=context_refs or None,
        links=link_refs or None,
        meeting_id=meeting_id,
        screen_context=screen_ref,
        attachments=attachment_refs or None,
    )


def render_note(header: NoteFrontmatter, body: str) -> str:
    """Serialize a header and body into the text of a note file."""
    post = frontmatter.Post(body)
    post.metadata = header.to_document()
    return frontmatter.dumps(post) + "\n"


def split_note(text: str) -> tuple[dict[str, Any] | None, str]:
    """
    Split note text into its raw header mapping and its body.

    Returns (None, text) when the text has no frontmatter block. The body is
    stripped of surrounding whitespace.

    Raises:
        yaml.YAMLError: If the header block is not valid YAML
    """
    post = frontmatter.loads(text)
    if not post.metadata:
        return None, text
    return dict(post.metadata), post.content.strip()


def parse_note(text: str, filename: str, schema_version: int) -> tuple[NoteFrontmatter, str]:
    """
    Parse a bundle note file.

    Args:
        text: File contents
        filename: Name used in skip reasons
        schema_version: Bundle schema version, for frontmatter migration

    Returns:
        (header, body)

    Raises:
        NoteParseError: With reason "no frontmatter", "invalid frontmatter"
            or "invalid id"
    """
    try:
        raw, body = split_note(text)
    except yaml.YAMLError as e:
        logger.debug("Unreadable frontmatter in %s: %s", filename, e)
        raise NoteParseError(filename, REASON_INVALID_FRONTMATTER) from e

    if raw is None:
        raise NoteParseError(filename, REASON_NO_FRONTMATTER)

    raw = migrate_frontmatter(raw, schema_version)

    if not is_valid_id(raw.get("id")):
        raise NoteParseError(filename, REASON_INVALID_ID)

    try:
        header = NoteFrontmatter.model_validate(raw)
    except ValidationError as e:
        logger.debug("Invalid frontmatter in %s: %s", filename, e)
        raise NoteParseError(filename, REASON_INVALID_FRONTMATTER) from e

    return header, body


def read_note_file(path: Path, schema_version: int) -> tuple[NoteFrontmatter, str]:
    """Read and parse a note file from disk."""
    return parse_note(path.read_text(encoding="utf-8"), path.name, schema_version)


def is_valid_id(value: object) -> bool:
    """True if *value* is a UUID string."""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
