"""Register exported paths as explicitly selected in selective folders."""

from __future__ import annotations

import logging
from typing import Iterable

from photobackup.sync import SyncEngineError, SyncFolder

LOGGER = logging.getLogger(__name__)


class SelectionCoordinator:
    """Mark newly saved files as selected so the engine keeps them locally.

    Selection is a no-op unless the folder uses selective synchronization.
    Failures are logged; the next run selects the same paths again.
    """

    def __init__(self, folder: SyncFolder) -> None:
        self.folder = folder
        self.enabled = folder.is_selective()

    def select(self, paths: Iterable[str]) -> bool:
        """Mark the given folder-relative paths as explicitly selected.

        Args:
            paths: Paths accumulated so far during the run.

        Returns:
            bool: True when the engine accepted the batch.
        """
        if not self.enabled:
            return False

        batch = list(dict.fromkeys(paths))
        LOGGER.info("Selecting %d paths", len(batch))
        try:
            self.folder.set_explicitly_selected(batch)
        except SyncEngineError as exc:
            LOGGER.warning("Could not select files: %s", exc)
            return False
        return True
