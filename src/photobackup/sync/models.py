"""Value types exchanged with the synchronization engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FolderType(str, Enum):
    """Synchronization mode of a shared folder."""

    SEND_RECEIVE = "sendreceive"
    SEND_ONLY = "sendonly"
    RECEIVE_ONLY = "receiveonly"
    RECEIVE_ENCRYPTED = "receiveencrypted"


@dataclass(frozen=True, slots=True)
class EntryInfo:
    """Synchronization metadata for a single path inside a folder.

    Attributes:
        path: Folder-relative path of the entry.
        deleted: Whether the entry is recorded as deleted.
        modified_at: Last modification time known to the engine.
        modified_by: Short identifier of the device that last modified it.
    """

    path: str
    deleted: bool = False
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None


__all__ = ["FolderType", "EntryInfo"]
