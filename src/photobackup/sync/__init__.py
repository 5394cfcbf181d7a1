"""Interface to the synchronization engine collaborator."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol, Sequence

from .errors import SyncEngineError
from .models import EntryInfo, FolderType

LOGGER = logging.getLogger(__name__)

_UNSUITABLE_BACKUP_TYPES = frozenset({FolderType.RECEIVE_ONLY, FolderType.RECEIVE_ENCRYPTED})


class SyncFolder(Protocol):
    """A synchronized folder exposed by the engine."""

    folder_id: str

    def exists(self) -> bool:
        """Return whether the folder is still configured on this device."""
        ...

    def is_paused(self) -> bool:
        """Return whether synchronization of the folder is paused."""
        ...

    def set_paused(self, paused: bool) -> None:
        """Pause or resume synchronization of the folder."""
        ...

    def folder_type(self) -> FolderType:
        """Return the synchronization mode of the folder."""
        ...

    def is_selective(self) -> bool:
        """Return whether only explicitly selected paths are kept locally."""
        ...

    def entry(self, path: str) -> Optional[EntryInfo]:
        """Return metadata for a folder-relative path, or None if unknown."""
        ...

    def set_explicitly_selected(self, paths: Sequence[str]) -> None:
        """Mark folder-relative paths as explicitly selected in one batch."""
        ...

    def local_path(self) -> Path:
        """Return the folder's root on the local filesystem."""
        ...


class SyncEngine(Protocol):
    """Entry point into the synchronization engine."""

    def folder(self, folder_id: str) -> Optional[SyncFolder]:
        """Return the folder with the given identifier, if configured."""
        ...

    def short_device_id(self) -> str:
        """Return the short identifier of the local device."""
        ...


def is_suitable_backup_destination(folder: SyncFolder) -> bool:
    """Return whether photos may be saved into the given folder.

    Args:
        folder: Folder under consideration.

    Returns:
        bool: False for receive-only, encrypted-receive, or missing folders.
    """
    return folder.exists() and folder.folder_type() not in _UNSUITABLE_BACKUP_TYPES


@contextmanager
def paused(folder: SyncFolder) -> Iterator[SyncFolder]:
    """Pause a folder for the duration of the block and restore its prior state.

    Args:
        folder: Folder to pause.

    Yields:
        SyncFolder: The paused folder.
    """
    was_paused = folder.is_paused()
    folder.set_paused(True)
    try:
        yield folder
    finally:
        try:
            folder.set_paused(was_paused)
        except SyncEngineError as exc:
            LOGGER.warning("Could not restore pause state of folder %s: %s", folder.folder_id, exc)


__all__ = [
    "SyncEngine",
    "SyncFolder",
    "SyncEngineError",
    "EntryInfo",
    "FolderType",
    "is_suitable_backup_destination",
    "paused",
]
