"""Planner mapping asset metadata to folder-relative destination paths."""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from photobackup.config.models import CURRENT_TIME_ZONE, FolderStructure
from photobackup.library.models import AssetRecord, MediaType

from .models import ExportTarget

LOGGER = logging.getLogger(__name__)

LIVE_VIDEO_EXTENSION = ".MOV"
VIDEO_SEGMENT = "Video"
LIVE_SEGMENT = "Live"
_FILE_DATE_FORMAT = "%Y-%m-%d"


def normalize_subdirectory(value: str) -> tuple[str, ...]:
    """Split a user-supplied subdirectory into safe path segments.

    Args:
        value: Subdirectory as typed by the user, e.g. ``"/Photos//Phone/"``.

    Returns:
        tuple[str, ...]: Segments without empty, ``.`` or ``..`` entries.
    """
    segments = value.replace("\\", "/").split("/")
    return tuple(segment for segment in segments if segment not in {"", ".", ".."})


class PathPlanner:
    """Compute deterministic export destinations for assets.

    Planning is a pure function of the asset and the planner's settings; it
    never touches the filesystem and never raises, so it is safe to call from
    any thread.
    """

    def __init__(
        self,
        structure: FolderStructure,
        *,
        subdirectory: str = "",
        time_zone: str = CURRENT_TIME_ZONE,
    ) -> None:
        """Initialize the planner.

        Args:
            structure: Folder layout to apply.
            subdirectory: Directory inside the folder used as the root.
            time_zone: ``"current"`` or an IANA zone name for date segments.
        """
        self.structure = structure
        self.root_segments = normalize_subdirectory(subdirectory)
        self._zone = self._resolve_zone(time_zone)

    def plan(self, asset: AssetRecord) -> ExportTarget:
        """Return the destinations for an asset and its live companion.

        Args:
            asset: Asset metadata enumerated from the library.

        Returns:
            ExportTarget: Planned folder-relative paths.
        """
        directory_segments = self.root_segments + self.directory_segments(asset)
        file_name = self.file_name(asset)
        directory = posixpath.join(*directory_segments) if directory_segments else ""
        path = posixpath.join(directory, file_name) if directory else file_name

        if asset.media_type is not MediaType.IMAGE or not asset.is_live:
            return ExportTarget(directory=directory, path=path)

        live_segments = directory_segments
        if self.structure.separates_types:
            live_segments = live_segments + (LIVE_SEGMENT,)
        live_directory = posixpath.join(*live_segments) if live_segments else ""
        live_name = file_name + LIVE_VIDEO_EXTENSION
        live_path = posixpath.join(live_directory, live_name) if live_directory else live_name
        return ExportTarget(
            directory=directory,
            path=path,
            live_directory=live_directory,
            live_path=live_path,
        )

    def directory_segments(self, asset: AssetRecord) -> tuple[str, ...]:
        """Return the layout-specific directories below the subdirectory root."""
        segments: list[str] = []
        local_date = self._local_date(asset)
        if local_date is not None:
            segments.extend(
                local_date.strftime(pattern) for pattern in self.structure.directory_date_formats
            )
        if self.structure.separates_types and asset.media_type is MediaType.VIDEO:
            segments.append(VIDEO_SEGMENT)
        return tuple(segments)

    def file_name(self, asset: AssetRecord) -> str:
        """Return the file name used for the primary resource."""
        name = asset.file_name
        if self.structure.prefixes_file_name:
            local_date = self._local_date(asset)
            if local_date is not None:
                return f"{local_date.strftime(_FILE_DATE_FORMAT)}_{name}"
        return name

    def _local_date(self, asset: AssetRecord) -> Optional[datetime]:
        created = asset.creation_date
        if created is None:
            return None
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        try:
            return created.astimezone(self._zone) if self._zone else created.astimezone()
        except (OverflowError, ValueError, OSError):
            return None

    @staticmethod
    def _resolve_zone(name: str) -> Optional[tzinfo]:
        if not name or name == CURRENT_TIME_ZONE:
            return None
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            LOGGER.warning("Unknown time zone %r; using the current time zone instead.", name)
            return None


_SAMPLE_DATE = datetime(2024, 8, 11, 12, 0, tzinfo=timezone.utc)


def example_path(structure: FolderStructure) -> str:
    """Return an illustrative destination path for a folder layout.

    Args:
        structure: Folder layout to illustrate.

    Returns:
        str: Example relative path such as ``2024-08/Video/IMG_2020.MOV``.
    """
    if structure.separates_types or structure is FolderStructure.BY_YEAR:
        sample = AssetRecord("sample", MediaType.VIDEO, _SAMPLE_DATE, resource_name="IMG_2020.MOV")
    else:
        sample = AssetRecord("sample", MediaType.IMAGE, _SAMPLE_DATE, resource_name="IMG_2020.HEIC")
    return PathPlanner(structure, time_zone="UTC").plan(sample).path
