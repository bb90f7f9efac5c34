"""
Pydantic models for the dashboard state and the sync subsystem.

Wire payloads use camelCase keys (``linkLayout``, ``customFavicon``)
so snapshots and team codes stay readable by older clients. Unknown
keys are kept, which lets a newer client's fields survive a round
trip through an older one.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .errors import ImportFormatError

# base64(IV || ciphertext || tag), see linkdash.sync.crypto
EncryptedBlob = str


def new_id() -> str:
    """Generate a fresh local identifier."""
    return str(uuid.uuid4())


class WireModel(BaseModel):
    """Base for models that cross the store or codec boundary."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible camelCase form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls, data: Any):
        """Validate an untrusted payload.

        Raises:
            ImportFormatError: If the payload does not match the model.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ImportFormatError(
                f"Malformed {cls.__name__} payload: {exc.error_count()} error(s)"
            ) from exc


class Link(WireModel):
    """A single URL tile."""

    id: str = Field(default_factory=new_id)
    title: str = ""
    url: str
    custom_favicon: Optional[str] = None
    click_count: int = 0


class Category(WireModel):
    """A named group of links."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    mode: str = "neutral"
    urls: list[Link] = Field(default_factory=list)
    pinned: bool = False
    is_collapsed: bool = False


class Team(WireModel):
    """An imported, read-only copy of someone else's shared categories."""

    id: str = Field(default_factory=new_id)
    name: str
    categories: list[Category] = Field(default_factory=list)
    joined_at: Optional[datetime] = None


class LocalSnapshot(WireModel):
    """The full application state that gets synchronized."""

    categories: list[Category] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    theme: str = "theme-white"
    pattern: str = "dots"
    link_layout: str = "list"

    def same_content(self, other: Optional["LocalSnapshot"]) -> bool:
        """Compare two snapshots by value."""
        if other is None:
            return False
        return self.to_wire() == other.to_wire()


class TeamPayload(WireModel):
    """The exportable subset of a snapshot: a name and some categories."""

    name: str
    categories: list[Category] = Field(default_factory=list)


class SyncStatus(str, Enum):
    """Sync lifecycle states."""

    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    RECOVERING = "recovering"
    ERROR = "error"


class SyncState(BaseModel):
    """Current sync status as shown by the status indicator."""

    status: SyncStatus = SyncStatus.IDLE
    last_synced: Optional[datetime] = None
    error: Optional[str] = None


class StoredBlob(BaseModel):
    """A blob as returned by BlindStore.load."""

    blob: EncryptedBlob
    updated_at: Optional[datetime] = None
