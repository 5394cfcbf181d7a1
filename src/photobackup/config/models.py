"""Configuration models describing photo back-up settings."""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

CURRENT_TIME_ZONE = "current"


class PhotoBackupBaseModel(BaseModel):
    """Shared configuration for photo back-up Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class MediaCategory(str, Enum):
    """Kinds of assets that can be enabled for back-up."""

    PHOTO = "photo"
    LIVE_PHOTO = "live"
    VIDEO = "video"


class FolderStructure(str, Enum):
    """Directory layouts used when placing exported assets in the folder.

    The values are persisted in the settings file and must remain stable.
    """

    BY_TYPE = "byType"
    BY_DATE = "byDate"
    BY_DATE_AND_TYPE = "byDateAndType"
    BY_DATE_COMPONENT = "byDateComponent"
    BY_DATE_COMPONENT_AND_TYPE = "byDateComponentAndType"
    BY_YEAR = "byYear"
    BY_YEAR_AND_TYPE = "byYearAndType"
    BY_YEAR_MONTH = "byYearMonth"
    BY_YEAR_MONTH_AND_TYPE = "byYearMonthAndType"
    BY_YEAR_DASH_MONTH = "byYearDashMonth"
    BY_YEAR_DASH_MONTH_AND_TYPE = "byYearDashMonthAndType"
    SINGLE_FOLDER = "singleFolder"
    SINGLE_FOLDER_DATE_PREFIXED = "singleFolderDatePrefixed"

    @property
    def directory_date_formats(self) -> Tuple[str, ...]:
        """Return the strftime patterns used for date directory segments."""
        return _DIRECTORY_DATE_FORMATS.get(self, ())

    @property
    def separates_types(self) -> bool:
        """Return whether videos and live companions get their own segment."""
        return self in _TYPE_SEPARATING

    @property
    def prefixes_file_name(self) -> bool:
        """Return whether the creation date is prepended to file names."""
        return self is FolderStructure.SINGLE_FOLDER_DATE_PREFIXED


_DIRECTORY_DATE_FORMATS: dict[FolderStructure, Tuple[str, ...]] = {
    FolderStructure.BY_DATE: ("%Y-%m-%d",),
    FolderStructure.BY_DATE_AND_TYPE: ("%Y-%m-%d",),
    FolderStructure.BY_DATE_COMPONENT: ("%Y", "%m", "%d"),
    FolderStructure.BY_DATE_COMPONENT_AND_TYPE: ("%Y", "%m", "%d"),
    FolderStructure.BY_YEAR: ("%Y",),
    FolderStructure.BY_YEAR_AND_TYPE: ("%Y",),
    FolderStructure.BY_YEAR_MONTH: ("%Y", "%m"),
    FolderStructure.BY_YEAR_MONTH_AND_TYPE: ("%Y", "%m"),
    FolderStructure.BY_YEAR_DASH_MONTH: ("%Y-%m",),
    FolderStructure.BY_YEAR_DASH_MONTH_AND_TYPE: ("%Y-%m",),
}

_TYPE_SEPARATING = frozenset(
    {
        FolderStructure.BY_TYPE,
        FolderStructure.BY_DATE_AND_TYPE,
        FolderStructure.BY_DATE_COMPONENT_AND_TYPE,
        FolderStructure.BY_YEAR_AND_TYPE,
        FolderStructure.BY_YEAR_MONTH_AND_TYPE,
        FolderStructure.BY_YEAR_DASH_MONTH_AND_TYPE,
    }
)


class BackupConfiguration(PhotoBackupBaseModel):
    """Settings that govern a single photo back-up run.

    Instances are frozen; a run captures one value at start and never reads
    settings again until it finishes.

    Attributes:
        album_id: Identifier of the source album in the photo library.
        folder_id: Identifier of the destination synchronized folder.
        saved_album_id: Optional album that receives successfully saved assets.
        categories: Asset categories enabled for export.
        folder_structure: Directory layout for exported files.
        subdirectory: Optional directory inside the folder used as the root.
        time_zone: ``"current"`` or an IANA time zone name used for dates.
        max_age_days: Maximum asset age considered for export (0 = unlimited).
        purge_enabled: Whether originals are deleted once backed up.
        purge_after_days: Minimum age of a backed-up entry before purging.
        background_copy: Whether back-ups may run in the background.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    album_id: str = ""
    folder_id: str = ""
    saved_album_id: Optional[str] = None
    categories: FrozenSet[MediaCategory] = Field(
        default_factory=lambda: frozenset(MediaCategory)
    )
    folder_structure: FolderStructure = FolderStructure.BY_DATE_AND_TYPE
    subdirectory: str = ""
    time_zone: str = CURRENT_TIME_ZONE
    max_age_days: int = Field(default=6 * 30, ge=0)
    purge_enabled: bool = False
    purge_after_days: int = Field(default=7, ge=0)
    background_copy: bool = False

    @property
    def is_ready(self) -> bool:
        """Return whether both the album and the destination folder are set."""
        return bool(self.album_id) and bool(self.folder_id)

    @field_validator("time_zone")
    @classmethod
    def _validate_time_zone(cls, value: str) -> str:
        if value == CURRENT_TIME_ZONE:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone '{value}'") from exc
        return value

    @field_serializer("categories")
    def _serialize_categories(self, value: FrozenSet[MediaCategory]) -> list[str]:
        order = list(MediaCategory)
        return [category.value for category in sorted(value, key=order.index)]


class LoggingSettings(PhotoBackupBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: str = "WARNING"


class PhotoBackupConfig(PhotoBackupBaseModel):
    """Top-level configuration struct.

    Attributes:
        backup: Photo back-up settings.
        logging: Logging configuration.
    """

    backup: BackupConfiguration = Field(default_factory=BackupConfiguration)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Settings whose change makes the stored change token meaningless.
TOKEN_SENSITIVE_FIELDS = (
    "album_id",
    "folder_id",
    "categories",
    "subdirectory",
    "folder_structure",
    "time_zone",
)


def invalidates_change_token(before: BackupConfiguration, after: BackupConfiguration) -> bool:
    """Return whether switching between two configurations requires a full rescan.

    Args:
        before: Configuration prior to the change.
        after: Configuration after the change.

    Returns:
        bool: True when the stored change token must be discarded.
    """
    return any(getattr(before, name) != getattr(after, name) for name in TOKEN_SENSITIVE_FIELDS)


__all__ = [
    "CURRENT_TIME_ZONE",
    "PhotoBackupBaseModel",
    "MediaCategory",
    "FolderStructure",
    "BackupConfiguration",
    "LoggingSettings",
    "PhotoBackupConfig",
    "TOKEN_SENSITIVE_FIELDS",
    "invalidates_change_token",
]
