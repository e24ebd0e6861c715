"""
Referential integrity checks for an imported bundle graph.

validate() reports every dangling id it finds rather than stopping at the
first, so a user fixing a bundle sees the whole picture at once.
"""

from __future__ import annotations

from .models import BundleGraph


def validate(graph: BundleGraph) -> list[str]:
    """
    Return one message per dangling reference in *graph*.

    Checks note contexts, note links, context links and note meetings
    against the notes, contexts and meetings carried by the bundle.
    An empty list means the graph is self-consistent.
    """
    violations: list[str] = []

    note_ids = {note.id for note in graph.notes}
    context_ids = {context.id for context in graph.contexts}
    meeting_ids = {meeting.id for meeting in graph.meetings}

    for nc in graph.note_contexts:
        if nc.note_id not in note_ids:
            violations.append(f"NoteContext references non-existent note: {nc.note_id}")

    for link in graph.note_links:
        if link.source_note_id not in note_ids:
            violations.append(f"NoteLink references non-existent source note: {link.source_note_id}")
        if link.target_note_id not in note_ids:
            violations.append(f"NoteLink references non-existent target note: {link.target_note_id}")

    for nc in graph.note_contexts:
        if nc.context_id not in context_ids:
            violations.append(f"NoteContext references non-existent context: {nc.context_id}")

    for cl in graph.context_links:
        if cl.parent_context_id not in context_ids:
            violations.append(
                f"ContextLink references non-existent parent context: {cl.parent_context_id}"
            )
        if cl.child_context_id not in context_ids:
            violations.append(
                f"ContextLink references non-existent child context: {cl.child_context_id}"
            )

    for nm in graph.note_meetings:
        if nm.note_id not in note_ids:
            violations.append(f"NoteMeeting references non-existent note: {nm.note_id}")
        if nm.meeting_id not in meeting_ids:
            violations.append(f"NoteMeeting references non-existent meeting: {nm.meeting_id}")

    return violations
