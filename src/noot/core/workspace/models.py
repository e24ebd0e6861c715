"""
Remote workspace API response models and sync result types.

Response models keep only the fields the sync engine reads and ignore the
rest of the payload.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RichText(APIModel):
    type: str | None = None
    plain_text: str | None = None


class RemoteUser(APIModel):
    """The integration's bot user."""

    id: str
    name: str | None = None


class PropertySchema(APIModel):
    id: str | None = None
    type: str | None = None
    name: str | None = None


class RemoteContainer(APIModel):
    """A database that pages are created in."""

    id: str
    object: str = "database"
    title: list[RichText] = Field(default_factory=list)
    properties: dict[str, PropertySchema] = Field(default_factory=dict)

    @property
    def display_title(self) -> str:
        text = "".join(part.plain_text or "" for part in self.title)
        return text or "Untitled"


class RemotePage(APIModel):
    id: str
    url: str | None = None


class RemoteBlock(APIModel):
    id: str
    type: str | None = None


@dataclass
class SyncProgress:
    """(phase, current, total, current note label) for sync sweeps."""

    phase: str
    current: int
    total: int
    current_note: str | None = None

    @property
    def fraction_completed(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.current / self.total


SyncProgressCallback = Callable[[SyncProgress], None]


class SyncReport(BaseModel):
    """Outcome of one sweep."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    notes_created: int = 0
    notes_updated: int = 0
    notes_failed: int = 0
    errors: list[str] = Field(default_factory=list)
