"""Bookkeeping models for the export pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from photobackup.library.models import AssetRecord


@dataclass(frozen=True, slots=True)
class ExportItem:
    """An asset queued for an asynchronous export pass.

    Attributes:
        asset: Asset to export.
        relative_path: Folder-relative destination path.
        destination: Absolute destination on the local filesystem.
    """

    asset: AssetRecord
    relative_path: str
    destination: Path


@dataclass(slots=True)
class ExportResult:
    """Accumulated outcome of the export passes.

    Attributes:
        videos: Videos queued by the scan for the video pass.
        live_photos: Live companions queued by the scan for the live pass.
        selected_paths: Relative paths written during the run, in write order.
        saved_assets: Assets whose files were written, one entry per file.
        skipped: Number of per-asset failures that were logged and skipped.
    """

    videos: list[ExportItem] = field(default_factory=list)
    live_photos: list[ExportItem] = field(default_factory=list)
    selected_paths: list[str] = field(default_factory=list)
    saved_assets: list[AssetRecord] = field(default_factory=list)
    skipped: int = 0

    def record_saved(self, asset: AssetRecord, relative_path: str) -> None:
        self.selected_paths.append(relative_path)
        self.saved_assets.append(asset)

    @property
    def saved_count(self) -> int:
        return len(self.saved_assets)

    @property
    def saved_identifiers(self) -> list[str]:
        return list(dict.fromkeys(asset.identifier for asset in self.saved_assets))
