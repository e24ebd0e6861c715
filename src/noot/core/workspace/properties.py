"""
Remote page properties.

Property names are resolved once per sync session against the container's
schema: the title is whichever property has type "title", the rest match by
lowercased name plus type, so a user who renamed "Created" to "created"
keeps working.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from noot.core.store import Meeting, Note

from .models import RemoteContainer

MAX_TITLE_LENGTH = 100

# (name, type) pairs a container needs before the first push
REQUIRED_PROPERTIES: list[tuple[str, str]] = [
    ("Created", "date"),
    ("Updated", "date"),
    ("Archived", "checkbox"),
    ("Contexts", "rich_text"),
    ("Meeting", "rich_text"),
    ("Meeting Date", "date"),
]

_HEADING_MARKER = re.compile(r"^#+\s*")


@dataclass(frozen=True)
class PropertyNames:
    """Actual property names on one container. None means absent."""

    title: str = "Name"
    created: str | None = None
    updated: str | None = None
    archived: str | None = None
    contexts: str | None = None
    meeting: str | None = None
    meeting_date: str | None = None

    @classmethod
    def from_container(cls, container: RemoteContainer) -> PropertyNames:
        title = "Name"
        found: dict[tuple[str, str], str] = {}
        for name, schema in container.properties.items():
            if schema.type == "title":
                title = name
            elif schema.type:
                found.setdefault((name.lower(), schema.type), name)

        return cls(
            title=title,
            created=found.get(("created", "date")),
            updated=found.get(("updated", "date")),
            archived=found.get(("archived", "checkbox")),
            contexts=found.get(("contexts", "rich_text")),
            meeting=found.get(("meeting", "rich_text")),
            meeting_date=found.get(("meeting date", "date")),
        )


def missing_properties(container: RemoteContainer) -> dict[str, Any]:
    """Schema additions for required properties the container lacks (by name, case-insensitive)."""
    existing = {name.lower() for name in container.properties}
    return {
        name: {prop_type: {}}
        for name, prop_type in REQUIRED_PROPERTIES
        if name.lower() not in existing
    }


def extract_title(content: str) -> str:
    """
    Page title from a note body.

    Example:
        >>> extract_title("## Sprint review\\nnotes")
        'Sprint review'
    """
    first_line = content.split("\n", 1)[0]
    return _HEADING_MARKER.sub("", first_line).strip()[:MAX_TITLE_LENGTH]


def _rich_text(content: str) -> dict[str, Any]:
    return {"rich_text": [{"text": {"content": content}}]}


def _date(value: datetime) -> dict[str, Any]:
    return {"date": {"start": value.isoformat()}}


def build_page_properties(
    note: Note,
    names: PropertyNames,
    context_names: list[str],
    meeting: Meeting | None = None,
    include_created: bool = False,
) -> dict[str, Any]:
    """
    Property values for a note's page.

    Args:
        note: Note being pushed
        names: Resolved property names for the target container
        context_names: Names of the note's contexts, in display order
        meeting: Linked meeting, if any
        include_created: Set the Created date (page creation only)

    Returns:
        Properties payload keyed by the container's own property names
    """
    properties: dict[str, Any] = {
        names.title: {"title": [{"text": {"content": extract_title(note.content)}}]},
    }

    if include_created and names.created:
        properties[names.created] = _date(note.created_at)
    if names.updated:
        properties[names.updated] = _date(note.updated_at)
    if names.archived:
        properties[names.archived] = {"checkbox": note.archived}
    if names.contexts and context_names:
        properties[names.contexts] = _rich_text(", ".join(context_names))

    if meeting is not None:
        if names.meeting:
            properties[names.meeting] = _rich_text(meeting.title or "Untitled Meeting")
        if names.meeting_date:
            properties[names.meeting_date] = _date(meeting.started_at)

    return properties


__all__ = [
    "MAX_TITLE_LENGTH",
    "REQUIRED_PROPERTIES",
    "PropertyNames",
    "build_page_properties",
    "extract_title",
    "missing_properties",
]
