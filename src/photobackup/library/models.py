"""Value types exchanged with the photo library."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional

DEFAULT_FILE_NAME = "file"


class MediaType(str, Enum):
    """Media type reported by the library for an asset."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ChangeToken:
    """Opaque checkpoint in the library's change history.

    The payload is never interpreted; it is only stored and handed back to the
    library that issued it.
    """

    payload: bytes

    def to_text(self) -> str:
        """Return the token encoded for text-based persistence."""
        return base64.b64encode(self.payload).decode("ascii")

    @classmethod
    def from_text(cls, value: str | None) -> Optional["ChangeToken"]:
        """Decode a persisted token, returning None for empty or corrupt data."""
        if not value:
            return None
        try:
            payload = base64.b64decode(value.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError):
            return None
        return cls(payload) if payload else None


@dataclass(frozen=True, slots=True)
class Album:
    """Album resolved from the library."""

    identifier: str
    title: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AssetRecord:
    """Metadata describing a single asset enumerated from the library.

    Attributes:
        identifier: Library-local identifier of the asset.
        media_type: Media type of the asset.
        creation_date: Creation timestamp when known.
        is_live: Whether the asset is a live photo with a paired video.
        resource_name: Original file name of the primary resource.
    """

    identifier: str
    media_type: MediaType
    creation_date: Optional[datetime] = None
    is_live: bool = False
    resource_name: Optional[str] = None

    @property
    def file_name(self) -> str:
        """Return the original file name made safe for use as a path segment."""
        name = (self.resource_name or "").replace("/", "_")
        if not name:
            return DEFAULT_FILE_NAME
        if name in {".", ".."}:
            return name.replace(".", "_")
        return name


@dataclass(frozen=True, slots=True)
class ChangeDetails:
    """Asset identifiers touched by one entry of the library's change log."""

    inserted: FrozenSet[str] = field(default_factory=frozenset)
    updated: FrozenSet[str] = field(default_factory=frozenset)
    deleted: FrozenSet[str] = field(default_factory=frozenset)


__all__ = [
    "DEFAULT_FILE_NAME",
    "MediaType",
    "ChangeToken",
    "Album",
    "AssetRecord",
    "ChangeDetails",
]
