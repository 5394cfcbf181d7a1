"""Category and age filtering for library assets."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from photobackup.config.models import MediaCategory
from photobackup.library.models import AssetRecord, MediaType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssetClassifier:
    """Decide which parts of an asset a run should export.

    An asset contributes up to two files: its primary resource (photo or
    video) and, for live photos, the paired video companion. Each is enabled
    by its own category.
    """

    def __init__(
        self,
        categories: Iterable[MediaCategory],
        *,
        max_age_days: int = 0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the classifier.

        Args:
            categories: Categories enabled for export.
            max_age_days: Maximum asset age to consider; 0 disables the limit.
            clock: Source of the current time.
        """
        self.categories = frozenset(categories)
        self.max_age = timedelta(days=max_age_days) if max_age_days > 0 else None
        self._clock = clock

    def category(self, asset: AssetRecord) -> Optional[MediaCategory]:
        """Return the category of an asset, or None for unsupported media."""
        if asset.media_type is MediaType.VIDEO:
            return MediaCategory.VIDEO
        if asset.media_type is MediaType.IMAGE:
            return MediaCategory.LIVE_PHOTO if asset.is_live else MediaCategory.PHOTO
        return None

    def is_within_age(self, asset: AssetRecord) -> bool:
        """Return whether the asset is recent enough to be exported.

        Assets without a creation date are always considered recent.
        """
        if self.max_age is None or asset.creation_date is None:
            return True
        created = asset.creation_date
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return self._clock() - created <= self.max_age

    def exports_primary(self, asset: AssetRecord) -> bool:
        """Return whether the asset's primary resource should be exported."""
        if asset.media_type is MediaType.VIDEO:
            return MediaCategory.VIDEO in self.categories
        if asset.media_type is MediaType.IMAGE:
            return MediaCategory.PHOTO in self.categories
        return False

    def exports_live_companion(self, asset: AssetRecord) -> bool:
        """Return whether the paired video of a live photo should be exported."""
        return (
            asset.media_type is MediaType.IMAGE
            and asset.is_live
            and MediaCategory.LIVE_PHOTO in self.categories
        )
