"""
Pytest configuration and shared fixtures.

Provides fixtures for temporary data directories, opened stores, and a
small populated entity graph used across the export, import and sync
tests, plus an in-memory remote workspace served through
httpx.MockTransport.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from noot.core.config.models import PathsConfig
from noot.core.store import (
    Attachment,
    AttachmentType,
    Context,
    Note,
    NoteContext,
    Store,
    insert,
)
from noot.core.workspace import WorkspaceClient

# ==============================================================================
# Environment
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep NOOT_* variables from the developer's shell out of every test."""
    for var in (
        "NOOT_DATA_DIR",
        "NOOT_BACKUPS_DIR",
        "NOOT_AUTO_SYNC",
        "NOOT_AUTO_SYNC_INTERVAL",
        "NOOT_SYNC_ARCHIVED",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))


# ==============================================================================
# Directory and Store Fixtures
# ==============================================================================


@pytest.fixture
def paths(tmp_path):
    """Paths for the primary store: data and backups under tmp_path."""
    return PathsConfig(data_dir=tmp_path / "data", backups_dir=tmp_path / "backups")


@pytest.fixture
def store(paths):
    """An empty, schema-initialized store."""
    return Store.open(paths.db_path)


@pytest.fixture
def other_paths(tmp_path):
    """Paths for a second, independent store (import target)."""
    return PathsConfig(data_dir=tmp_path / "other-data", backups_dir=tmp_path / "other-backups")


@pytest.fixture
def other_store(other_paths):
    return Store.open(other_paths.db_path)


@pytest.fixture
def export_dir(tmp_path):
    directory = tmp_path / "exports"
    directory.mkdir()
    return directory


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


@dataclass
class SampleGraph:
    """Ids of the entities created by the `populated_store` fixture."""

    note_a: Note
    note_b: Note
    backend: Context
    attachment: Attachment


def add_attachment_file(paths: PathsConfig, attachment: Attachment, data: bytes = b"\x89PNG fake") -> Path:
    """Write the file an attachment row points at."""
    path = paths.attachments_dir / attachment.file_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def populated_store(store, paths):
    """
    Store with note A (tagged "Backend", one screenshot) and untagged note B.

    Returns:
        SampleGraph with the created records
    """
    note_a = Note(
        content="# API design\nEndpoints for the sync service",
        created_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        updated_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
    )
    note_b = Note(
        content="Buy milk",
        created_at=datetime(2024, 5, 2, 8, 0, tzinfo=timezone.utc),
        updated_at=datetime(2024, 5, 2, 8, 0, tzinfo=timezone.utc),
    )
    backend = Context(name="Backend", created_at=datetime(2024, 4, 1, tzinfo=timezone.utc))
    attachment = Attachment(
        note_id=note_a.id,
        type=AttachmentType.SCREENSHOT,
        file_path="screenshots/diagram.png",
        file_size=10,
    )

    with store.write() as conn:
        insert(conn, note_a)
        insert(conn, note_b)
        insert(conn, backend)
        insert(conn, NoteContext(note_id=note_a.id, context_id=backend.id))
        insert(conn, attachment)
    add_attachment_file(paths, attachment)

    return SampleGraph(note_a=note_a, note_b=note_b, backend=backend, attachment=attachment)


# ==============================================================================
# Remote Workspace Fixtures
# ==============================================================================


class FakeWorkspaceAPI:
    """
    In-memory stand-in for the remote workspace API, served through
    httpx.MockTransport.

    Keeps one container, the pages created in it and their blocks, and
    records every request as (method, path, json body).

    Attributes:
        fail_titles: Page titles whose create/update answers 400
        requests: Recorded requests
    """

    def __init__(self, container_title: str = "Noot Notes", properties: dict | None = None) -> None:
        self.container = {
            "object": "database",
            "id": "db-1",
            "title": [{"type": "text", "plain_text": container_title}],
            "properties": properties
            if properties is not None
            else {"Name": {"id": "title", "type": "title", "name": "Name"}},
        }
        self.pages: dict[str, dict] = {}
        self.blocks: dict[str, list[dict]] = {}
        self.requests: list[tuple[str, str, dict | None]] = []
        self.fail_titles: set[str] = set()
        self.unauthorized = False
        self._ids = 0

    def _next_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}-{self._ids:04d}-aaaa"

    def _title(self, properties: dict) -> str:
        for value in properties.values():
            if value.get("title"):
                return value["title"][0]["text"]["content"]
        return ""

    def calls(self, method: str, prefix: str = "") -> list[tuple[str, str, dict | None]]:
        return [r for r in self.requests if r[0] == method and r[1].startswith(prefix)]

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if self.unauthorized:
            return httpx.Response(401, json={"object": "error", "message": "API token is invalid."})

        if request.method == "GET" and path == "/users/me":
            return httpx.Response(200, json={"object": "user", "id": "bot-1", "name": "Noot Bot"})
        if request.method == "POST" and path == "/search":
            return httpx.Response(200, json={"results": [self.container], "has_more": False})
        if path == "/databases/db-1":
            if request.method == "PATCH":
                for name, definition in body["properties"].items():
                    prop_type = next(iter(definition))
                    self.container["properties"][name] = {"id": name, "type": prop_type, "name": name}
            return httpx.Response(200, json=self.container)

        if request.method == "POST" and path == "/pages":
            if self._title(body["properties"]) in self.fail_titles:
                return httpx.Response(400, json={"message": "body failed validation"})
            page_id = self._next_id("page")
            self.pages[page_id] = {"id": page_id, "properties": body["properties"], "archived": False}
            self.blocks[page_id] = [dict(b, id=self._next_id("block")) for b in body["children"]]
            return httpx.Response(200, json={"object": "page", "id": page_id, "url": f"https://x/{page_id}"})

        if path.startswith("/pages/"):
            page_id = path.split("/")[2]
            if page_id not in self.pages:
                return httpx.Response(404, json={"message": "Could not find page"})
            page = self.pages[page_id]
            if request.method == "PATCH":
                if "properties" in body and self._title(body["properties"]) in self.fail_titles:
                    return httpx.Response(400, json={"message": "body failed validation"})
                page["properties"].update(body.get("properties", {}))
                page["archived"] = body.get("archived", page["archived"])
            return httpx.Response(200, json={"object": "page", "id": page_id})

        if path.startswith("/blocks/") and path.endswith("/children"):
            page_id = path.split("/")[2]
            if request.method == "PATCH":
                added = [dict(b, id=self._next_id("block")) for b in body["children"]]
                self.blocks.setdefault(page_id, []).extend(added)
                return httpx.Response(200, json={"results": added})
            return httpx.Response(
                200, json={"results": self.blocks.get(page_id, []), "has_more": False, "next_cursor": None}
            )

        if request.method == "DELETE" and path.startswith("/blocks/"):
            block_id = path.split("/")[2]
            for blocks in self.blocks.values():
                blocks[:] = [b for b in blocks if b["id"] != block_id]
            return httpx.Response(200, json={"object": "block", "id": block_id, "archived": True})

        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})


@pytest.fixture
def workspace_api():
    return FakeWorkspaceAPI()


@pytest.fixture
def client_factory(workspace_api):
    """Builds WorkspaceClients that talk to `workspace_api`."""

    def factory(token):
        return WorkspaceClient(token, transport=httpx.MockTransport(workspace_api.handle))

    return factory
