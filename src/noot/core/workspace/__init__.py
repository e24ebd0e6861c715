"""
One-way incremental sync of notes into a remote workspace.

Usage:
    from noot.core.workspace import WorkspaceSyncService

    service = WorkspaceSyncService(store, config.workspace)
    await service.connect(token)
    report = await service.sync_all()
"""

from .blocks import markdown_to_blocks
from .client import API_BASE_URL, API_VERSION, WorkspaceClient
from .exceptions import (
    InvalidTokenError,
    NoContainerAccessError,
    NotConnectedError,
    NoteNotFoundError,
    WorkspaceAPIError,
    WorkspaceError,
)
from .models import (
    RemoteBlock,
    RemoteContainer,
    RemotePage,
    RemoteUser,
    SyncProgress,
    SyncReport,
)
from .properties import (
    REQUIRED_PROPERTIES,
    PropertyNames,
    build_page_properties,
    extract_title,
    missing_properties,
)
from .scheduler import AutoSyncScheduler
from .sync import SyncAction, WorkspaceSyncService, choose_container

__all__ = [
    # Client
    "API_BASE_URL",
    "API_VERSION",
    "WorkspaceClient",
    # Exceptions
    "InvalidTokenError",
    "NoContainerAccessError",
    "NotConnectedError",
    "NoteNotFoundError",
    "WorkspaceAPIError",
    "WorkspaceError",
    # Models
    "RemoteBlock",
    "RemoteContainer",
    "RemotePage",
    "RemoteUser",
    "SyncProgress",
    "SyncReport",
    # Properties and blocks
    "REQUIRED_PROPERTIES",
    "PropertyNames",
    "build_page_properties",
    "extract_title",
    "markdown_to_blocks",
    "missing_properties",
    # Sync
    "AutoSyncScheduler",
    "SyncAction",
    "WorkspaceSyncService",
    "choose_container",
]
