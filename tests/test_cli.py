"""
Tests for the noot CLI.

Commands run through typer's CliRunner against a data directory under
tmp_path (the same one the `store` fixture opens), so fixtures can seed
data and tests can inspect what a command left behind.
"""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from noot import __version__
from noot.cli import app
from noot.cli import workspace as workspace_cli
from noot.cli.errors import ExitCode
from noot.core.bundle import BundleExporter
from noot.core.store import Note, count, fetch_all, insert
from noot.core.workspace import WorkspaceSyncService

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(isolated_env, tmp_path, monkeypatch, paths):
    """Point the CLI at the test data directory and keep stray .env files out."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("NOOT_DATA_DIR", str(paths.data_dir))
    monkeypatch.setenv("NOOT_BACKUPS_DIR", str(paths.backups_dir))


@pytest.fixture
def fake_service(monkeypatch, store, client_factory):
    """Route workspace commands to the fake remote API."""
    service = WorkspaceSyncService(store, client_factory=client_factory)
    monkeypatch.setattr(workspace_cli, "_get_service", lambda: service)
    return service


def _only_child(directory: Path) -> Path:
    children = list(directory.iterdir())
    assert len(children) == 1
    return children[0]


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


# ==============================================================================
# Export
# ==============================================================================


class TestExportCommand:
    """Test `noot export`."""

    def test_export_to_backups_dir(self, populated_store, paths):
        result = runner.invoke(app, ["export"])

        assert result.exit_code == 0, result.output
        assert "Exported to" in result.output
        assert "Export Summary" in result.output
        bundle = _only_child(paths.backups_dir)
        assert bundle.name.startswith("noot-export-")
        assert len(list((bundle / "notes").iterdir())) == 2

    def test_export_to_destination(self, populated_store, export_dir):
        result = runner.invoke(app, ["export", str(export_dir)])

        assert result.exit_code == 0, result.output
        assert (_only_child(export_dir) / "manifest.json").is_file()

    def test_markdown_export(self, populated_store, export_dir):
        result = runner.invoke(app, ["export", str(export_dir), "--markdown", "--organize-by", "flat"])

        assert result.exit_code == 0, result.output
        out = _only_child(export_dir)
        assert out.name.startswith("noot-markdown-")
        assert (out / "2024-05-02-buy-milk.md").is_file()

    def test_context_export(self, populated_store, export_dir):
        result = runner.invoke(app, ["export", str(export_dir), "--context", populated_store.backend.id])

        assert result.exit_code == 0, result.output
        assert (export_dir / "Backend" / "2024-05-01-api-design.md").is_file()

    def test_unknown_context(self, store, export_dir):
        result = runner.invoke(app, ["export", str(export_dir), "--context", "missing"])
        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Context not found" in result.output


# ==============================================================================
# Import
# ==============================================================================


@pytest.fixture
def foreign_bundle(tmp_path, other_store, other_paths):
    """A bundle exported from a different store with one note."""
    with other_store.write() as conn:
        insert(conn, Note(content="From elsewhere"))
    return BundleExporter(other_store, other_paths).export_full(tmp_path / "incoming")


class TestImportCommand:
    """Test `noot import`."""

    def test_preview(self, foreign_bundle, store):
        result = runner.invoke(app, ["import", str(foreign_bundle), "--preview"])

        assert result.exit_code == 0, result.output
        assert "Bundle Preview" in result.output
        with store.read() as conn:
            assert count(conn, "notes") == 0

    def test_preview_invalid(self, tmp_path):
        result = runner.invoke(app, ["import", str(tmp_path), "--preview"])

        assert result.exit_code == ExitCode.USER_ERROR
        assert "manifest.json not found" in result.output
        assert "Bundle Preview" not in result.output
        assert "noot-export-* directory itself" in result.output

    def test_merge(self, foreign_bundle, populated_store, store):
        result = runner.invoke(app, ["import", str(foreign_bundle)])

        assert result.exit_code == 0, result.output
        assert "Import complete (merge)" in result.output
        with store.read() as conn:
            assert count(conn, "notes") == 3

    def test_invalid_bundle(self, tmp_path):
        result = runner.invoke(app, ["import", str(tmp_path / "missing")])
        assert result.exit_code == ExitCode.USER_ERROR

    def test_replace_asks_first(self, foreign_bundle, populated_store, store):
        result = runner.invoke(app, ["import", str(foreign_bundle), "--mode", "replace"], input="n\n")

        assert result.exit_code != 0
        with store.read() as conn:
            assert count(conn, "notes") == 2

    def test_replace_with_yes(self, foreign_bundle, populated_store, store, paths):
        result = runner.invoke(app, ["import", str(foreign_bundle), "--mode", "replace", "--yes"])

        assert result.exit_code == 0, result.output
        with store.read() as conn:
            assert [n.content for n in fetch_all(conn, Note)] == ["From elsewhere"]
        assert _only_child(paths.backups_dir).name.startswith("noot-export-")


class TestImportMarkdownCommand:
    def test_import_folder(self, tmp_path, store):
        folder = tmp_path / "md"
        (folder / "Work").mkdir(parents=True)
        (folder / "Work" / "a.md").write_text("First")
        (folder / "b.md").write_text("Second")

        result = runner.invoke(app, ["import-markdown", str(folder)])

        assert result.exit_code == 0, result.output
        with store.read() as conn:
            assert count(conn, "notes") == 2
            assert count(conn, "contexts") == 1

    def test_no_folders(self, tmp_path, store):
        folder = tmp_path / "md"
        (folder / "Work").mkdir(parents=True)
        (folder / "Work" / "a.md").write_text("First")

        result = runner.invoke(app, ["import-markdown", str(folder), "--no-folders"])

        assert result.exit_code == 0, result.output
        with store.read() as conn:
            assert count(conn, "contexts") == 0

    def test_missing_folder(self, tmp_path):
        result = runner.invoke(app, ["import-markdown", str(tmp_path / "nope")])
        assert result.exit_code == 2


# ==============================================================================
# Workspace
# ==============================================================================


class TestWorkspaceCommands:
    """Test `noot workspace ...`."""

    def test_status_not_connected(self, store):
        result = runner.invoke(app, ["workspace", "status"])
        assert result.exit_code == 0
        assert "Not connected" in result.output

    def test_sync_not_connected(self, store):
        result = runner.invoke(app, ["workspace", "sync"])
        assert result.exit_code == ExitCode.USER_ERROR
        assert "noot workspace connect" in result.output

    def test_connect_rejects_bad_token(self, store):
        result = runner.invoke(app, ["workspace", "connect", "not-a-token"])
        assert result.exit_code == ExitCode.USER_ERROR

    def test_connect_sync_status(self, fake_service, workspace_api, populated_store):
        result = runner.invoke(app, ["workspace", "connect", "secret_abc"])
        assert result.exit_code == 0, result.output
        assert "Connected to Noot Bot" in result.output

        result = runner.invoke(app, ["workspace", "sync"])
        assert result.exit_code == 0, result.output
        assert "Pages created" in result.output
        assert len(workspace_api.pages) == 2

        result = runner.invoke(app, ["workspace", "status"])
        assert result.exit_code == 0, result.output
        assert "Noot Notes" in result.output

    def test_sync_single_note(self, fake_service, workspace_api, populated_store):
        runner.invoke(app, ["workspace", "connect", "secret_abc"])

        result = runner.invoke(app, ["workspace", "sync", "--note", populated_store.note_b.id])

        assert result.exit_code == 0, result.output
        assert "Created page" in result.output
        assert len(workspace_api.pages) == 1

    def test_sync_all_failed(self, fake_service, workspace_api, populated_store):
        runner.invoke(app, ["workspace", "connect", "secret_abc"])
        workspace_api.fail_titles = {"API design", "Buy milk"}

        result = runner.invoke(app, ["workspace", "sync"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Errors" in result.output

    def test_resync(self, fake_service, workspace_api, populated_store):
        runner.invoke(app, ["workspace", "connect", "secret_abc"])
        runner.invoke(app, ["workspace", "sync"])

        result = runner.invoke(app, ["workspace", "resync"])

        assert result.exit_code == 0, result.output
        assert "Cleared 2 sync records" in result.output
        assert len(workspace_api.pages) == 4

    def test_settings_and_disconnect(self, fake_service, store):
        runner.invoke(app, ["workspace", "connect", "secret_abc"])

        result = runner.invoke(app, ["workspace", "settings", "--sync-archived"])
        assert result.exit_code == 0, result.output
        assert fake_service.get_connection().sync_archived_notes is True

        result = runner.invoke(app, ["workspace", "disconnect"])
        assert result.exit_code == 0, result.output
        assert "Disconnected" in result.output
        assert not fake_service.is_connected
