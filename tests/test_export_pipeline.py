"""Export pipeline tests."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from photobackup.classification import AssetClassifier
from photobackup.config import FolderStructure, MediaCategory
from photobackup.export import CancellingExportError, ExportPipeline, ExportResult
from photobackup.library import AssetRecord, AssetUnavailableError, MediaType
from photobackup.planning import PathPlanner
from photobackup.progress import RunPhase, RunState
from photobackup.purge import PurgeManager
from photobackup.sync import EntryInfo

from conftest import AUGUST_11, FakePhotoLibrary, FakeSyncFolder, make_asset

NOW = datetime(2024, 9, 1, tzinfo=timezone.utc)


def _pipeline(
    library: FakePhotoLibrary,
    folder: FakeSyncFolder,
    *,
    structure: FolderStructure = FolderStructure.BY_YEAR_DASH_MONTH_AND_TYPE,
    categories: tuple[MediaCategory, ...] = tuple(MediaCategory),
    full_export: bool = False,
    purge: Optional[PurgeManager] = None,
    cancel_event: Optional[threading.Event] = None,
    states: Optional[list[RunState]] = None,
) -> ExportPipeline:
    return ExportPipeline(
        library,
        folder,
        PathPlanner(structure, time_zone="UTC"),
        AssetClassifier(categories, clock=lambda: NOW),
        root=folder.root,
        full_export=full_export,
        purge=purge,
        cancel_event=cancel_event,
        progress=states.append if states is not None else None,
    )


def _run_all(pipeline: ExportPipeline, assets: list[AssetRecord]) -> ExportResult:
    result = pipeline.scan(assets)
    pipeline.export_videos(result)
    pipeline.export_live_photos(result)
    return result


def test_exports_photos_videos_and_live_companions(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    assets = [
        make_asset("p", name="IMG_1.HEIC"),
        make_asset("l", name="IMG_2.HEIC", live=True),
        make_asset("v", MediaType.VIDEO, name="IMG_3.MOV"),
    ]
    states: list[RunState] = []
    pipeline = _pipeline(library, folder, states=states)

    result = pipeline.scan(assets)

    assert [item.relative_path for item in result.videos] == ["2024-08/Video/IMG_3.MOV"]
    assert [item.relative_path for item in result.live_photos] == ["2024-08/Live/IMG_2.HEIC.MOV"]
    assert result.selected_paths == ["2024-08/IMG_1.HEIC", "2024-08/IMG_2.HEIC"]

    pipeline.export_videos(result)
    pipeline.export_live_photos(result)

    root = folder.root
    assert (root / "2024-08/IMG_1.HEIC").read_bytes() == b"image:p"
    assert (root / "2024-08/IMG_2.HEIC").read_bytes() == b"image:l"
    assert (root / "2024-08/Video/IMG_3.MOV").read_bytes() == b"video:v"
    assert (root / "2024-08/Live/IMG_2.HEIC.MOV").read_bytes() == b"live:l"
    assert result.saved_count == 4
    assert result.saved_identifiers == ["p", "l", "v"]
    phases = [state.phase for state in states]
    assert phases.index(RunPhase.EXPORTING_PHOTOS) < phases.index(RunPhase.EXPORTING_VIDEOS)
    assert phases.index(RunPhase.EXPORTING_VIDEOS) < phases.index(RunPhase.EXPORTING_LIVE_PHOTOS)


def test_written_files_carry_the_creation_date(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    _run_all(_pipeline(library, folder), [make_asset("p", name="IMG_1.HEIC")])

    written = folder.root / "2024-08/IMG_1.HEIC"
    assert written.stat().st_mtime == pytest.approx(AUGUST_11.timestamp())


def test_previously_synchronized_entries_are_skipped(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    folder.entries["2024-08/IMG_1.HEIC"] = EntryInfo(path="2024-08/IMG_1.HEIC", deleted=True)

    result = _run_all(_pipeline(library, folder), [make_asset("p", name="IMG_1.HEIC")])

    assert result.saved_count == 0
    assert not (folder.root / "2024-08/IMG_1.HEIC").exists()


def test_existing_files_are_not_rewritten(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    target = folder.root / "2024-08/IMG_1.HEIC"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"already here")

    result = _run_all(_pipeline(library, folder), [make_asset("p", name="IMG_1.HEIC")])

    assert result.saved_count == 0
    assert target.read_bytes() == b"already here"


def test_full_export_rewrites_existing_files(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    target = folder.root / "2024-08/IMG_1.HEIC"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"stale")
    folder.entries["2024-08/IMG_1.HEIC"] = EntryInfo(path="2024-08/IMG_1.HEIC")

    result = _run_all(
        _pipeline(library, folder, full_export=True), [make_asset("p", name="IMG_1.HEIC")]
    )

    assert result.saved_count == 1
    assert target.read_bytes() == b"image:p"


def test_unavailable_photo_is_skipped(library: FakePhotoLibrary, folder: FakeSyncFolder) -> None:
    library.image_errors["cloud"] = AssetUnavailableError("cloud only")
    assets = [make_asset("cloud", name="IMG_9.HEIC"), make_asset("p", name="IMG_1.HEIC")]

    result = _run_all(_pipeline(library, folder), assets)

    assert result.skipped == 1
    assert result.saved_identifiers == ["p"]


def test_failed_video_export_is_not_counted(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    library.video_errors["v"] = RuntimeError("export session failed")

    result = _run_all(
        _pipeline(library, folder), [make_asset("v", MediaType.VIDEO, name="IMG_3.MOV")]
    )

    assert result.saved_count == 0
    assert result.skipped == 1


def test_repeated_live_callbacks_save_once(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    library.live_callback_repeats = 3

    result = _run_all(
        _pipeline(library, folder, categories=(MediaCategory.LIVE_PHOTO,)),
        [make_asset("l", name="IMG_2.HEIC", live=True)],
    )

    assert result.selected_paths == ["2024-08/Live/IMG_2.HEIC.MOV"]
    assert not (folder.root / "2024-08/IMG_2.HEIC").exists()


def test_disabled_categories_are_not_exported(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    assets = [
        make_asset("p", name="IMG_1.HEIC"),
        make_asset("v", MediaType.VIDEO, name="IMG_3.MOV"),
        make_asset("a", MediaType.AUDIO, name="memo.m4a"),
    ]

    result = _pipeline(library, folder, categories=(MediaCategory.VIDEO,)).scan(assets)

    assert result.selected_paths == []
    assert [item.asset.identifier for item in result.videos] == ["v"]


def test_directories_are_created_only_for_written_files(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    library.image_errors["cloud"] = AssetUnavailableError("cloud only")
    folder.entries["2024-08/Video/IMG_4.MOV"] = EntryInfo(
        path="2024-08/Video/IMG_4.MOV", deleted=True
    )
    assets = [
        make_asset("p", name="IMG_1.HEIC"),
        make_asset("l", name="IMG_2.HEIC", live=True),
        make_asset("cloud", name="IMG_9.HEIC"),
        make_asset("gone", MediaType.VIDEO, name="IMG_4.MOV"),
    ]

    videos_only = _pipeline(library, folder, categories=(MediaCategory.VIDEO,))
    _run_all(videos_only, assets[:2])
    assert list(folder.root.iterdir()) == []

    result = _run_all(_pipeline(library, folder), assets[2:])

    assert result.saved_count == 0
    assert list(folder.root.iterdir()) == []


def test_cancellation_stops_enumeration(library: FakePhotoLibrary, folder: FakeSyncFolder) -> None:
    cancel = threading.Event()
    cancel.set()

    result = _pipeline(library, folder, cancel_event=cancel).scan([make_asset("p")])

    assert result.saved_count == 0
    assert list(folder.root.iterdir()) == []


def test_directory_failure_aborts_the_run(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    (folder.root / "2024-08").write_bytes(b"not a directory")

    with pytest.raises(CancellingExportError):
        _pipeline(library, folder).scan([make_asset("p", name="IMG_1.HEIC")])


def test_full_export_still_collects_purge_candidates(
    library: FakePhotoLibrary, folder: FakeSyncFolder
) -> None:
    folder.entries["2024-08/IMG_1.HEIC"] = EntryInfo(
        path="2024-08/IMG_1.HEIC",
        modified_at=NOW - timedelta(days=20),
        modified_by="LOCAL01",
    )
    purge = PurgeManager(
        library, enabled=True, purge_after_days=7, device_id="LOCAL01", clock=lambda: NOW
    )

    result = _run_all(
        _pipeline(library, folder, full_export=True, purge=purge),
        [make_asset("p", name="IMG_1.HEIC")],
    )

    assert [candidate.asset.identifier for candidate in purge.candidates] == ["p"]
    assert result.saved_count == 1
