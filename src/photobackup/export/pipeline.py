"""Export pipeline writing library assets into the synchronized folder."""

from __future__ import annotations

import logging
import os
import threading
from datetime import timezone
from pathlib import Path
from typing import Callable, Optional, Sequence

from photobackup.classification import AssetClassifier
from photobackup.library import (
    AssetCodecError,
    AssetRecord,
    AssetUnavailableError,
    ExportCompletion,
    MediaType,
    PhotoLibrary,
)
from photobackup.planning import ExportTarget, PathPlanner
from photobackup.progress import RunPhase, RunState
from photobackup.purge import PurgeManager
from photobackup.sync import SyncEngineError, SyncFolder

from .errors import CancellingExportError
from .futures import SingleResolutionFuture
from .models import ExportItem, ExportResult

LOGGER = logging.getLogger(__name__)

StartExport = Callable[[AssetRecord, Path, ExportCompletion], None]


class ExportPipeline:
    """Materialize assets at their planned destinations.

    Work happens in three passes that never interleave: ``scan`` enumerates
    assets and writes photos synchronously while queueing videos and live
    companions, then ``export_videos`` and ``export_live_photos`` drain the
    queues one asynchronous export at a time.
    """

    def __init__(
        self,
        library: PhotoLibrary,
        folder: SyncFolder,
        planner: PathPlanner,
        classifier: AssetClassifier,
        *,
        root: Path,
        full_export: bool = False,
        purge: Optional[PurgeManager] = None,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[Callable[[RunState], None]] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            library: Photo library supplying asset data.
            folder: Destination folder in the synchronization engine.
            planner: Planner computing destination paths.
            classifier: Classifier deciding what to export.
            root: Local filesystem root of the destination folder.
            full_export: Re-export assets even if they exist or were synced.
            purge: Purge manager collecting originals eligible for deletion.
            cancel_event: Event signalling cooperative cancellation.
            progress: Callback receiving progress states.
        """
        self.library = library
        self.folder = folder
        self.planner = planner
        self.classifier = classifier
        self.root = root
        self.full_export = full_export
        self.purge = purge
        self.cancel_event = cancel_event or threading.Event()
        self._progress = progress

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    # ------------------------------------------------------------------ #
    # Passes                                                             #
    # ------------------------------------------------------------------ #

    def scan(self, assets: Sequence[AssetRecord]) -> ExportResult:
        """Enumerate assets, export photos and queue asynchronous exports.

        Args:
            assets: Assets fetched from the source album.

        Returns:
            ExportResult: Saved photos plus the queued video and live work.

        Raises:
            CancellingExportError: If a destination directory cannot be created.
        """
        result = ExportResult()
        total = len(assets)
        self._report(RunState.exporting(RunPhase.EXPORTING_PHOTOS, 0, total))

        for index, asset in enumerate(assets):
            if self.cancelled:
                LOGGER.info("Cancellation requested; stopping asset enumeration")
                break
            self._scan_asset(asset, index, total, result)

        return result

    def export_videos(self, result: ExportResult) -> None:
        """Run queued video export sessions one at a time."""
        total = len(result.videos)
        LOGGER.info("Starting video exports for %d videos", total)
        self._report(RunState.exporting(RunPhase.EXPORTING_VIDEOS, 0, total))

        for index, item in enumerate(result.videos):
            if self.cancelled:
                break
            self._report(
                RunState.exporting(RunPhase.EXPORTING_VIDEOS, index, total, item.asset.file_name)
            )
            LOGGER.info("Exporting video %s", item.asset.file_name)
            self._export_async(self.library.export_video, item, result)

    def export_live_photos(self, result: ExportResult) -> None:
        """Write queued live-photo video companions one at a time."""
        total = len(result.live_photos)
        LOGGER.info("Exporting %d live photos", total)
        self._report(RunState.exporting(RunPhase.EXPORTING_LIVE_PHOTOS, 0, total))

        for index, item in enumerate(result.live_photos):
            if self.cancelled:
                break
            LOGGER.info("Exporting live photo %s %s", item.asset.file_name, item.relative_path)
            self._export_async(self.library.write_live_photo_video, item, result)
            self._report(
                RunState.exporting(
                    RunPhase.EXPORTING_LIVE_PHOTOS, index, total, item.asset.file_name
                )
            )

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _scan_asset(
        self, asset: AssetRecord, index: int, total: int, result: ExportResult
    ) -> None:
        LOGGER.info("Asset: %s %s", asset.file_name, asset.identifier)

        if self.classifier.category(asset) is None:
            LOGGER.debug("Skipping %s: unsupported media %s", asset.identifier, asset.media_type)
            return
        if not self.classifier.is_within_age(asset):
            return

        self._report(
            RunState.exporting(RunPhase.EXPORTING_PHOTOS, index, total, asset.file_name)
        )

        target = self.planner.plan(asset)
        if self._previously_synchronized(asset, target):
            return

        destination = self.root / target.path
        if self.full_export or not destination.exists():
            if asset.media_type is MediaType.VIDEO:
                if self.classifier.exports_primary(asset):
                    LOGGER.info("Queueing video export session for %s", asset.file_name)
                    self._prepare_directory(destination.parent)
                    result.videos.append(ExportItem(asset, target.path, destination))
            elif self.classifier.exports_primary(asset):
                self._export_photo(ExportItem(asset, target.path, destination), result)

        if target.live_path is not None and self.classifier.exports_live_companion(asset):
            live_destination = self.root / target.live_path
            LOGGER.info("Found live photo %s %s", asset.file_name, target.live_path)
            if self.full_export or not live_destination.exists():
                self._prepare_directory(live_destination.parent)
                result.live_photos.append(ExportItem(asset, target.live_path, live_destination))

    def _previously_synchronized(self, asset: AssetRecord, target: ExportTarget) -> bool:
        purging = self.purge is not None and self.purge.enabled
        if self.full_export and not purging:
            return False

        try:
            entry = self.folder.entry(target.path)
        except SyncEngineError as exc:
            LOGGER.warning("Could not read entry %s: %s", target.path, exc)
            return False
        if entry is None:
            return False

        if purging and self.purge is not None:
            self.purge.consider(asset, entry)

        if self.full_export:
            return False
        if entry.deleted:
            LOGGER.info("Entry at %s was deleted, not saving again", target.path)
        else:
            LOGGER.info("Entry at %s exists, not saving again", target.path)
        return True

    def _prepare_directory(self, directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CancellingExportError(f"Could not create directory {directory}: {exc}") from exc

    def _export_photo(self, item: ExportItem, result: ExportResult) -> None:
        asset = item.asset
        try:
            data = self.library.request_image_data(asset)
        except AssetUnavailableError:
            LOGGER.info("Asset %s is only available in the cloud and is ignored", asset.file_name)
            result.skipped += 1
            return
        except AssetCodecError as exc:
            LOGGER.info("Image data request failed for %s: %s", asset.file_name, exc)
            result.skipped += 1
            return
        except Exception as exc:
            LOGGER.warning("Image data request failed for %s: %s", asset.file_name, exc)
            result.skipped += 1
            return

        self._prepare_directory(item.destination.parent)
        try:
            item.destination.write_bytes(data)
        except OSError as exc:
            LOGGER.warning("Could not write %s: %s", item.destination, exc)
            result.skipped += 1
            return

        self._preserve_creation_date(asset, item.destination)
        result.record_saved(asset, item.relative_path)

    def _export_async(self, start: StartExport, item: ExportItem, result: ExportResult) -> None:
        asset = item.asset
        future = SingleResolutionFuture(item.relative_path)
        try:
            start(asset, item.destination, future.resolve)
            completed = future.wait(self.cancel_event)
        except (AssetUnavailableError, AssetCodecError) as exc:
            LOGGER.info("Could not export %s: %s", asset.file_name, exc)
            result.skipped += 1
            return
        except Exception as exc:
            LOGGER.warning("Failed to save %s: %s", item.destination, exc)
            result.skipped += 1
            return

        if not completed:
            LOGGER.info("Abandoned export of %s after cancellation", asset.file_name)
            return
        if not item.destination.exists():
            LOGGER.warning(
                "Export of %s finished without writing %s", asset.file_name, item.destination
            )
            result.skipped += 1
            return

        LOGGER.info("Done exporting %s", asset.file_name)
        self._preserve_creation_date(asset, item.destination)
        result.record_saved(asset, item.relative_path)

    def _preserve_creation_date(self, asset: AssetRecord, path: Path) -> None:
        # The engine detects changes by modification time.
        created = asset.creation_date
        if created is None:
            return
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        stamp = created.timestamp()
        try:
            os.utime(path, (stamp, stamp))
        except OSError as exc:
            LOGGER.warning("Could not set timestamps of %s: %s", path, exc)

    def _report(self, state: RunState) -> None:
        if self._progress is not None:
            self._progress(state)
