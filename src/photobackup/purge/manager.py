"""Purge manager deciding which originals may leave the photo library."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from photobackup.library import AssetRecord, PhotoLibrary, PhotoLibraryError
from photobackup.sync import EntryInfo

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class PurgeCandidate:
    """Asset queued for deletion together with the evidence that allowed it."""

    asset: AssetRecord
    synced_at: datetime
    modified_by: str


class PurgeManager:
    """Collect purge candidates during a run and delete them in one batch.

    An original only qualifies when its destination entry was last modified
    by this device before the retention cutoff.
    """

    def __init__(
        self,
        library: PhotoLibrary,
        *,
        enabled: bool,
        purge_after_days: int,
        device_id: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the purge manager.

        Args:
            library: Photo library that owns the originals.
            enabled: Whether purging is configured.
            purge_after_days: Minimum age of the destination entry.
            device_id: Short identifier of the local device.
            clock: Source of the current time.
        """
        self._library = library
        self.enabled = enabled
        self.device_id = device_id
        self.cutoff = clock() - timedelta(days=max(purge_after_days, 0))
        self._candidates: list[PurgeCandidate] = []

    @property
    def candidates(self) -> list[PurgeCandidate]:
        return list(self._candidates)

    def consider(self, asset: AssetRecord, entry: Optional[EntryInfo]) -> bool:
        """Queue an asset for deletion when its destination entry qualifies.

        Args:
            asset: Original asset in the library.
            entry: Destination entry metadata, or None if it could not be read.

        Returns:
            bool: True when the asset was queued.
        """
        if not self.enabled or entry is None or entry.deleted:
            return False

        modified_at = entry.modified_at
        if modified_at is None:
            return False
        if modified_at.tzinfo is None:
            modified_at = modified_at.replace(tzinfo=timezone.utc)
        if modified_at >= self.cutoff:
            return False
        if entry.modified_by != self.device_id:
            LOGGER.debug("Not purging %s: last modified by %s", entry.path, entry.modified_by)
            return False

        LOGGER.info("Purge entry: %s %s %s", entry.path, modified_at, entry.modified_by)
        self._candidates.append(
            PurgeCandidate(asset=asset, synced_at=modified_at, modified_by=entry.modified_by)
        )
        return True

    def purge(self, *, in_background: bool) -> Optional[int]:
        """Delete queued originals from the library.

        Args:
            in_background: Whether the run is constrained by background time.

        Returns:
            int | None: Number of originals removed, or None when purging did
            not run.
        """
        if not self.enabled or in_background:
            return None
        if not self._candidates:
            return 0

        identifiers = list(dict.fromkeys(c.asset.identifier for c in self._candidates))
        LOGGER.info("Purge %d originals", len(identifiers))
        try:
            self._library.delete_assets(identifiers)
        except PhotoLibraryError as exc:
            LOGGER.warning("Could not delete originals: %s", exc)
            return 0
        return len(identifiers)
