"""
Tests for BundleExporter.

Covers the full bundle layout, manifest counts, missing attachment files,
the readable markdown export and single-context export.
"""

import json

import frontmatter
import pytest

from noot.core.bundle import BundleExporter, ExportError, MarkdownExportOptions, OrganizeBy
from noot.core.bundle.exporter import markdown_filename, readable_markdown, slugify, unique_directory
from noot.core.store import (
    Attachment,
    AttachmentType,
    Meeting,
    Note,
    NoteLink,
    NoteLinkRelationship,
    NoteMeeting,
    ScreenContext,
    ScreenContextSourceType,
    insert,
)


@pytest.fixture
def exporter(store, paths):
    return BundleExporter(store, paths, noot_version="9.9.9")


def _read_manifest(bundle):
    return json.loads((bundle / "manifest.json").read_text())


# ==============================================================================
# Full export
# ==============================================================================


class TestExportFull:
    """Test the bundle layout and contents."""

    def test_bundle_layout(self, exporter, populated_store, export_dir):
        bundle = exporter.export_full(export_dir)

        assert bundle.parent == export_dir
        assert bundle.name.startswith("noot-export-")
        for name in (
            "manifest.json",
            "contexts.json",
            "context-links.json",
            "meetings.json",
            "calendar-accounts.json",
            "calendar-events.json",
            "calendar-rules.json",
        ):
            assert (bundle / name).is_file(), name
        assert (bundle / "notes").is_dir()

    def test_tagged_and_untagged_notes(self, exporter, populated_store, export_dir):
        """Tagged note carries its context ref, the untagged one has no contexts key."""
        sample = populated_store
        bundle = exporter.export_full(export_dir)

        post_a = frontmatter.load(bundle / "notes" / f"{sample.note_a.id}.md")
        assert post_a.metadata["contexts"] == [{"id": sample.backend.id, "name": "Backend"}]
        assert post_a.content == sample.note_a.content

        post_b = frontmatter.load(bundle / "notes" / f"{sample.note_b.id}.md")
        assert "contexts" not in post_b.metadata
        assert post_b.metadata["archived"] is False

    def test_attachment_copied_under_bundle_name(self, exporter, populated_store, export_dir):
        sample = populated_store
        bundle = exporter.export_full(export_dir)

        files = list((bundle / "attachments").iterdir())
        assert [f.name for f in files] == [f"{sample.attachment.id}-screenshot.png"]
        assert files[0].read_bytes() == b"\x89PNG fake"

    def test_manifest_counts(self, exporter, populated_store, export_dir):
        manifest = _read_manifest(exporter.export_full(export_dir))

        assert manifest["noteCount"] == 2
        assert manifest["contextCount"] == 1
        assert manifest["attachmentCount"] == 1
        assert manifest["contextLinkCount"] == 0
        assert manifest["schemaVersion"] == 1
        assert manifest["nootVersion"] == "9.9.9"

    def test_missing_attachment_file_skipped(self, exporter, populated_store, paths, export_dir):
        """Count comes from rows even when the file is gone."""
        (paths.attachments_dir / populated_store.attachment.file_path).unlink()

        bundle = exporter.export_full(export_dir)

        assert _read_manifest(bundle)["attachmentCount"] == 1
        assert list((bundle / "attachments").iterdir()) == []

    def test_join_rows_in_frontmatter(self, exporter, store, populated_store, export_dir):
        sample = populated_store
        meeting = Meeting(title="Planning")
        with store.write() as conn:
            insert(conn, meeting)
            insert(conn, NoteMeeting(note_id=sample.note_a.id, meeting_id=meeting.id))
            insert(
                conn,
                NoteLink(
                    source_note_id=sample.note_a.id,
                    target_note_id=sample.note_b.id,
                    relationship=NoteLinkRelationship.INFORMED_BY,
                ),
            )
            insert(
                conn,
                ScreenContext(
                    note_id=sample.note_a.id,
                    source_type=ScreenContextSourceType.VSCODE,
                    file_path="/src/app.py",
                    line_start=3,
                ),
            )

        bundle = exporter.export_full(export_dir)
        header = frontmatter.load(bundle / "notes" / f"{sample.note_a.id}.md").metadata

        assert header["meetingId"] == meeting.id
        assert header["links"] == [{"targetId": sample.note_b.id, "relationship": "informed_by"}]
        assert header["screenContext"]["sourceType"] == "vscode"
        assert header["screenContext"]["lineStart"] == 3

        meetings = json.loads((bundle / "meetings.json").read_text())
        assert [m["title"] for m in meetings] == ["Planning"]

    def test_empty_store(self, exporter, export_dir):
        bundle = exporter.export_full(export_dir)
        assert _read_manifest(bundle)["noteCount"] == 0
        assert not (bundle / "attachments").exists()
        assert list((bundle / "notes").iterdir()) == []

    def test_config_copied_when_present(self, exporter, paths, export_dir):
        paths.config_path.write_text('{"workspace": {"auto_sync_enabled": true}}')
        bundle = exporter.export_full(export_dir)
        assert json.loads((bundle / "config.json").read_text())["workspace"]["auto_sync_enabled"] is True

    def test_no_config_file(self, exporter, export_dir):
        assert not (exporter.export_full(export_dir) / "config.json").exists()

    def test_second_export_gets_own_directory(self, exporter, export_dir):
        first = exporter.export_full(export_dir)
        second = exporter.export_full(export_dir)
        assert first != second
        assert first.exists() and second.exists()

    def test_progress_ends_complete(self, exporter, populated_store, export_dir):
        steps = []
        exporter.export_full(export_dir, progress=steps.append)

        assert steps[0].phase == "Reading database"
        assert steps[-1].phase == "Complete"
        assert steps[-1].fraction_completed == 1.0

    def test_store_failure_leaves_no_directory(self, exporter, store, export_dir):
        with store.write() as conn:
            conn.execute("DROP TABLE calendar_series_context_rules")

        with pytest.raises(ExportError) as exc_info:
            exporter.export_full(export_dir)

        assert "reading the store" in str(exc_info.value)
        assert list(export_dir.iterdir()) == []

    def test_unwritable_destination(self, exporter, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(ExportError):
            exporter.export_full(blocker)


class TestUniqueDirectory:
    def test_free_name(self, tmp_path):
        assert unique_directory(tmp_path, "x") == tmp_path / "x"

    def test_suffixes(self, tmp_path):
        (tmp_path / "x").mkdir()
        (tmp_path / "x-2").mkdir()
        assert unique_directory(tmp_path, "x") == tmp_path / "x-3"


# ==============================================================================
# Readable markdown
# ==============================================================================


class TestMarkdownFilename:
    def test_title_slug(self, populated_store):
        assert markdown_filename(populated_store.note_a) == "2024-05-01-api-design.md"

    def test_falls_back_to_id(self):
        note = Note(content="!!!")
        assert markdown_filename(note).endswith(f"-{note.id[:8].lower()}.md")

    def test_slugify_limits_length(self):
        assert len(slugify("word " * 20)) <= 40


class TestExportMarkdown:
    def test_organized_by_context(self, exporter, populated_store, export_dir):
        out = exporter.export_markdown(export_dir)

        assert out.name.startswith("noot-markdown-")
        assert (out / "Backend" / "2024-05-01-api-design.md").is_file()
        assert (out / "_inbox" / "2024-05-02-buy-milk.md").read_text() == "Buy milk"

    def test_attachments_section(self, exporter, populated_store, export_dir):
        sample = populated_store
        out = exporter.export_markdown(export_dir)

        text = (out / "Backend" / "2024-05-01-api-design.md").read_text()
        assert "## Attachments" in text
        assert f"![Screenshot](_attachments/{sample.attachment.id}.png)" in text
        assert (out / "_attachments" / f"{sample.attachment.id}.png").is_file()

    def test_organized_by_date(self, exporter, populated_store, export_dir):
        out = exporter.export_markdown(export_dir, MarkdownExportOptions(organize_by=OrganizeBy.DATE))
        assert sorted(p.name for p in (out / "2024-05").iterdir()) == [
            "2024-05-01-api-design.md",
            "2024-05-02-buy-milk.md",
        ]

    def test_flat_without_attachments(self, exporter, populated_store, export_dir):
        options = MarkdownExportOptions(organize_by=OrganizeBy.FLAT, include_attachments=False)
        out = exporter.export_markdown(export_dir, options)
        assert sorted(p.name for p in out.iterdir()) == [
            "2024-05-01-api-design.md",
            "2024-05-02-buy-milk.md",
        ]

    def test_archived_excluded_by_default(self, exporter, store, export_dir):
        with store.write() as conn:
            insert(conn, Note(content="Old stuff", archived=True))
        out = exporter.export_markdown(export_dir, MarkdownExportOptions(organize_by=OrganizeBy.FLAT))
        assert list(out.iterdir()) == []

        out = exporter.export_markdown(
            export_dir, MarkdownExportOptions(organize_by=OrganizeBy.FLAT, include_archived=True)
        )
        assert len(list(out.iterdir())) == 1

    def test_readable_markdown_durations(self):
        note = Note(content="Call")
        audio = Attachment(
            note_id=note.id, type=AttachmentType.AUDIO, file_path="audio/a.m4a", duration_seconds=125
        )
        text = readable_markdown(note, [audio])
        assert f"- [Audio Recording](_attachments/{audio.id}.m4a) (2:05)" in text

    def test_readable_markdown_without_attachments(self):
        assert readable_markdown(Note(content="Plain"), []) == "Plain"


class TestExportContext:
    def test_exports_only_context_notes(self, exporter, populated_store, export_dir):
        out = exporter.export_context(populated_store.backend.id, export_dir)

        assert out == export_dir / "Backend"
        assert (out / "2024-05-01-api-design.md").is_file()
        assert not (out / "2024-05-02-buy-milk.md").exists()
        assert (out / "_attachments").is_dir()

    def test_unknown_context(self, exporter, export_dir):
        with pytest.raises(ExportError) as exc_info:
            exporter.export_context("missing", export_dir)
        assert exc_info.value.context["context_id"] == "missing"
