"""Asset classifier tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from photobackup.classification import AssetClassifier
from photobackup.config import MediaCategory
from photobackup.library import MediaType

from conftest import make_asset

NOW = datetime(2024, 9, 1, tzinfo=timezone.utc)


def _classifier(*categories: MediaCategory, max_age_days: int = 0) -> AssetClassifier:
    return AssetClassifier(categories, max_age_days=max_age_days, clock=lambda: NOW)


def test_categories_follow_media_type_and_live_flag() -> None:
    classifier = _classifier(*MediaCategory)

    assert classifier.category(make_asset("p")) is MediaCategory.PHOTO
    assert classifier.category(make_asset("l", live=True)) is MediaCategory.LIVE_PHOTO
    assert classifier.category(make_asset("v", MediaType.VIDEO)) is MediaCategory.VIDEO
    assert classifier.category(make_asset("a", MediaType.AUDIO)) is None
    assert classifier.category(make_asset("u", MediaType.UNKNOWN)) is None


def test_live_photo_primary_depends_on_photo_category() -> None:
    live = make_asset("l", live=True)

    only_live = _classifier(MediaCategory.LIVE_PHOTO)
    only_photo = _classifier(MediaCategory.PHOTO)

    assert not only_live.exports_primary(live)
    assert only_live.exports_live_companion(live)
    assert only_photo.exports_primary(live)
    assert not only_photo.exports_live_companion(live)


def test_videos_need_video_category() -> None:
    video = make_asset("v", MediaType.VIDEO)

    assert _classifier(MediaCategory.VIDEO).exports_primary(video)
    assert not _classifier(MediaCategory.PHOTO).exports_primary(video)
    assert not _classifier(*MediaCategory).exports_live_companion(video)


def test_age_limit_filters_old_assets() -> None:
    classifier = _classifier(*MediaCategory, max_age_days=30)

    recent = make_asset("r", created=NOW - timedelta(days=29))
    old = make_asset("o", created=NOW - timedelta(days=31))
    undated = make_asset("u", created=None)

    assert classifier.is_within_age(recent)
    assert not classifier.is_within_age(old)
    assert classifier.is_within_age(undated)


def test_zero_age_limit_disables_filtering() -> None:
    classifier = _classifier(*MediaCategory, max_age_days=0)

    assert classifier.is_within_age(make_asset("o", created=NOW - timedelta(days=5000)))
