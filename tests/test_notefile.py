"""
Tests for bundle note files (frontmatter + body).
"""

from datetime import datetime, timezone

import pytest

from noot.core.bundle import NoteParseError
from noot.core.bundle.notefile import (
    REASON_INVALID_FRONTMATTER,
    REASON_INVALID_ID,
    REASON_NO_FRONTMATTER,
    build_frontmatter,
    is_valid_id,
    parse_note,
    render_note,
    split_note,
)
from noot.core.store import (
    Attachment,
    AttachmentType,
    Context,
    Meeting,
    Note,
    NoteContext,
    NoteLink,
    NoteLinkRelationship,
    NoteMeeting,
    ScreenContext,
    ScreenContextSourceType,
)


@pytest.fixture
def note():
    return Note(
        content="# Retro\n\nWent well",
        created_at=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        updated_at=datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc),
    )


class TestBuildFrontmatter:
    def test_minimal_note_omits_optional_keys(self, note):
        header = build_frontmatter(note, [], [], [], [], [], {})
        document = header.to_document()
        assert set(document) == {"id", "createdAt", "updatedAt", "archived"}

    def test_full_note(self, note):
        context = Context(name="Backend")
        target = Note(content="t")
        meeting = Meeting(title="Standup")
        attachment = Attachment(
            note_id=note.id, type=AttachmentType.SCREEN_RECORDING, file_path="recordings/a.mov",
            file_size=42, duration_seconds=75,
        )
        screen = ScreenContext(note_id=note.id, source_type=ScreenContextSourceType.BROWSER, url="https://x")

        header = build_frontmatter(
            note,
            [NoteContext(note_id=note.id, context_id=context.id)],
            [NoteLink(source_note_id=note.id, target_note_id=target.id, relationship=NoteLinkRelationship.CONTINUES)],
            [NoteMeeting(note_id=note.id, meeting_id=meeting.id)],
            [screen],
            [attachment],
            {context.id: context},
        )
        document = header.to_document()

        assert document["contexts"] == [{"id": context.id, "name": "Backend"}]
        assert document["links"] == [{"targetId": target.id, "relationship": "continues"}]
        assert document["meetingId"] == meeting.id
        assert document["screenContext"]["sourceType"] == "browser"
        assert document["screenContext"]["url"] == "https://x"
        assert document["attachments"] == [
            {
                "id": attachment.id,
                "type": "screen_recording",
                "filename": f"{attachment.id}-screen_recording.mov",
                "fileSize": 42,
                "durationSeconds": 75.0,
            }
        ]

    def test_unknown_context_dropped(self, note):
        header = build_frontmatter(
            note, [NoteContext(note_id=note.id, context_id="GONE")], [], [], [], [], {}
        )
        assert header.contexts is None


class TestRenderAndParse:
    def test_round_trip(self, note):
        header = build_frontmatter(note, [], [], [], [], [], {})
        text = render_note(header, note.content)

        assert text.startswith("---\n")
        parsed, body = parse_note(text, f"{note.id}.md", 1)
        assert parsed.id == note.id
        assert parsed.created_at == note.created_at
        assert parsed.archived is False
        assert body == note.content

    def test_no_frontmatter(self):
        with pytest.raises(NoteParseError) as exc_info:
            parse_note("just text", "a.md", 1)
        assert exc_info.value.reason == REASON_NO_FRONTMATTER
        assert exc_info.value.filename == "a.md"

    def test_unparsable_yaml(self):
        text = "---\nid: [unclosed\n---\nbody\n"
        with pytest.raises(NoteParseError) as exc_info:
            parse_note(text, "a.md", 1)
        assert exc_info.value.reason == REASON_INVALID_FRONTMATTER

    def test_invalid_id(self):
        text = "---\nid: not-a-uuid\ncreatedAt: 2024-01-01T00:00:00Z\nupdatedAt: 2024-01-01T00:00:00Z\n---\nbody\n"
        with pytest.raises(NoteParseError) as exc_info:
            parse_note(text, "a.md", 1)
        assert exc_info.value.reason == REASON_INVALID_ID

    def test_missing_required_field(self):
        text = "---\nid: 6F1C2E0A-1B2C-4D5E-8F90-0123456789AB\n---\nbody\n"
        with pytest.raises(NoteParseError) as exc_info:
            parse_note(text, "a.md", 1)
        assert exc_info.value.reason == REASON_INVALID_FRONTMATTER

    def test_legacy_note_without_archived(self):
        text = (
            "---\n"
            "id: 6F1C2E0A-1B2C-4D5E-8F90-0123456789AB\n"
            "createdAt: '2024-01-01T00:00:00Z'\n"
            "updatedAt: '2024-01-01T00:00:00Z'\n"
            "---\n"
            "\n"
            "Old note\n"
        )
        header, body = parse_note(text, "old.md", 0)
        assert header.archived is False
        assert body == "Old note"

    def test_split_note_without_header(self):
        assert split_note("plain") == (None, "plain")


class TestIsValidId:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("6F1C2E0A-1B2C-4D5E-8F90-0123456789AB", True),
            ("6f1c2e0a-1b2c-4d5e-8f90-0123456789ab", True),
            ("nope", False),
            (None, False),
            (42, False),
        ],
    )
    def test_values(self, value, expected):
        assert is_valid_id(value) is expected
