"""Shared fixtures providing in-memory photo library and sync engine fakes."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Sequence

import pytest

from photobackup.config.models import BackupConfiguration
from photobackup.library import (
    Album,
    AssetRecord,
    ChangeDetails,
    ChangeToken,
    ChangeTokenExpiredError,
    ExportCompletion,
    MediaType,
)
from photobackup.run import RunController
from photobackup.state import StateRepository
from photobackup.sync import EntryInfo, FolderType, SyncEngineError

AUGUST_11 = datetime(2024, 8, 11, 12, 0, tzinfo=timezone.utc)


def make_asset(
    identifier: str,
    media_type: MediaType = MediaType.IMAGE,
    *,
    name: Optional[str] = None,
    created: Optional[datetime] = AUGUST_11,
    live: bool = False,
) -> AssetRecord:
    """Return an asset record with sensible defaults for tests."""
    if name is None:
        name = f"{identifier}.MOV" if media_type is MediaType.VIDEO else f"{identifier}.HEIC"
    return AssetRecord(
        identifier=identifier,
        media_type=media_type,
        creation_date=created,
        is_live=live,
        resource_name=name,
    )


class FakePhotoLibrary:
    """In-memory photo library with scripted failures and change history."""

    def __init__(self) -> None:
        self.albums: dict[str, Album] = {}
        self.assets: dict[str, list[AssetRecord]] = {}
        self.image_errors: dict[str, Exception] = {}
        self.video_errors: dict[str, Exception] = {}
        self.live_errors: dict[str, Exception] = {}
        self.live_callback_repeats = 2
        self.changes: list[ChangeDetails] = []
        self.change_error: Optional[Exception] = None
        self.fetch_calls: list[Optional[set[str]]] = []
        self.tagged: list[tuple[str, list[str]]] = []
        self.deleted: list[list[str]] = []
        self.delete_error: Optional[Exception] = None

    def add_album(self, album_id: str) -> Album:
        album = Album(album_id, title=album_id.title())
        self.albums[album_id] = album
        self.assets.setdefault(album_id, [])
        return album

    def add_asset(self, album_id: str, asset: AssetRecord) -> AssetRecord:
        self.assets.setdefault(album_id, []).append(asset)
        return asset

    def record_change(self, inserted: Iterable[str] = (), updated: Iterable[str] = ()) -> None:
        self.changes.append(ChangeDetails(inserted=frozenset(inserted), updated=frozenset(updated)))

    def resolve_album(self, album_id: str) -> Optional[Album]:
        return self.albums.get(album_id)

    def fetch_assets(
        self, album: Album, identifiers: Optional[Iterable[str]] = None
    ) -> Sequence[AssetRecord]:
        wanted = set(identifiers) if identifiers is not None else None
        self.fetch_calls.append(wanted)
        items = self.assets.get(album.identifier, [])
        if wanted is None:
            return list(items)
        return [asset for asset in items if asset.identifier in wanted]

    def current_change_token(self) -> ChangeToken:
        return ChangeToken(str(len(self.changes)).encode("ascii"))

    def fetch_changes(self, since: ChangeToken) -> Iterable[ChangeDetails]:
        if self.change_error is not None:
            raise self.change_error
        try:
            start = int(since.payload.decode("ascii"))
        except ValueError as exc:
            raise ChangeTokenExpiredError("unknown token") from exc
        return list(self.changes[start:])

    def request_image_data(self, asset: AssetRecord) -> bytes:
        error = self.image_errors.get(asset.identifier)
        if error is not None:
            raise error
        return f"image:{asset.identifier}".encode()

    def export_video(
        self, asset: AssetRecord, destination: Path, completion: ExportCompletion
    ) -> None:
        error = self.video_errors.get(asset.identifier)

        def _finish() -> None:
            if error is not None:
                completion(error)
                return
            destination.write_bytes(f"video:{asset.identifier}".encode())
            completion(None)

        threading.Thread(target=_finish).start()

    def write_live_photo_video(
        self, asset: AssetRecord, destination: Path, completion: ExportCompletion
    ) -> None:
        error = self.live_errors.get(asset.identifier)

        def _finish() -> None:
            if error is None:
                destination.write_bytes(f"live:{asset.identifier}".encode())
            for _ in range(self.live_callback_repeats):
                completion(error)

        threading.Thread(target=_finish).start()

    def add_assets_to_album(self, album_id: str, asset_ids: Sequence[str]) -> None:
        self.tagged.append((album_id, list(asset_ids)))

    def delete_assets(self, asset_ids: Sequence[str]) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(list(asset_ids))


class FakeSyncFolder:
    """Folder backed by a temporary directory with scripted engine metadata."""

    def __init__(self, folder_id: str, root: Path) -> None:
        self.folder_id = folder_id
        self.root = root
        self.present = True
        self.paused = False
        self.kind = FolderType.SEND_RECEIVE
        self.selective = False
        self.entries: dict[str, EntryInfo] = {}
        self.entry_error: Optional[Exception] = None
        self.selection_error: Optional[Exception] = None
        self.selections: list[list[str]] = []
        self.pause_history: list[bool] = []
        self.paused_during_selection: list[bool] = []

    def exists(self) -> bool:
        return self.present

    def is_paused(self) -> bool:
        return self.paused

    def set_paused(self, paused: bool) -> None:
        self.pause_history.append(paused)
        self.paused = paused

    def folder_type(self) -> FolderType:
        return self.kind

    def is_selective(self) -> bool:
        return self.selective

    def entry(self, path: str) -> Optional[EntryInfo]:
        if self.entry_error is not None:
            raise self.entry_error
        return self.entries.get(path)

    def set_explicitly_selected(self, paths: Sequence[str]) -> None:
        self.paused_during_selection.append(self.paused)
        if self.selection_error is not None:
            raise self.selection_error
        self.selections.append(list(paths))

    def local_path(self) -> Path:
        if not self.present:
            raise SyncEngineError("folder has no local path")
        return self.root


class FakeSyncEngine:
    """Engine exposing a fixed set of folders."""

    def __init__(self, device_id: str = "LOCAL01") -> None:
        self.device_id = device_id
        self.folders: dict[str, FakeSyncFolder] = {}

    def folder(self, folder_id: str) -> Optional[FakeSyncFolder]:
        return self.folders.get(folder_id)

    def short_device_id(self) -> str:
        return self.device_id


class FakeHost:
    """Background host whose expiration can be triggered manually."""

    def __init__(self) -> None:
        self.started: list[str] = []
        self.ended: list[Any] = []
        self._handlers: list[Callable[[], None]] = []

    def begin_background_task(self, name: str, on_expiration: Callable[[], None]) -> Any:
        self.started.append(name)
        self._handlers.append(on_expiration)
        return len(self.started)

    def end_background_task(self, handle: Any) -> None:
        self.ended.append(handle)

    def time_remaining(self) -> Optional[float]:
        return 30.0

    def expire(self) -> None:
        for handler in list(self._handlers):
            handler()


@pytest.fixture
def library() -> FakePhotoLibrary:
    fake = FakePhotoLibrary()
    fake.add_album("album")
    return fake


@pytest.fixture
def folder(tmp_path: Path) -> FakeSyncFolder:
    root = tmp_path / "folder"
    root.mkdir()
    return FakeSyncFolder("folder", root)


@pytest.fixture
def engine(folder: FakeSyncFolder) -> FakeSyncEngine:
    fake = FakeSyncEngine()
    fake.folders[folder.folder_id] = folder
    return fake


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def repository(tmp_path: Path) -> StateRepository:
    return StateRepository(tmp_path / "state")


@pytest.fixture
def make_controller(
    library: FakePhotoLibrary,
    engine: FakeSyncEngine,
    repository: StateRepository,
    host: FakeHost,
) -> Callable[..., RunController]:
    """Return a factory building controllers around a given configuration."""

    def _make(**overrides: Any) -> RunController:
        settings: dict[str, Any] = {
            "album_id": "album",
            "folder_id": "folder",
            "time_zone": "UTC",
            "max_age_days": 0,
        }
        settings.update(overrides)
        config = BackupConfiguration(**settings)
        return RunController(
            library,
            engine,
            repository,
            configuration=lambda: config,
            host=host,
            clock=lambda: datetime(2024, 9, 1, tzinfo=timezone.utc),
        )

    return _make
