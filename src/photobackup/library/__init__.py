"""Interface to the device photo library collaborator."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol, Sequence

from .errors import (
    AssetCodecError,
    AssetUnavailableError,
    ChangeDetailsUnavailableError,
    ChangeTokenExpiredError,
    PhotoLibraryError,
)
from .models import Album, AssetRecord, ChangeDetails, ChangeToken, MediaType

ExportCompletion = Callable[[Optional[BaseException]], None]


class PhotoLibrary(Protocol):
    """Operations the back-up pipeline consumes from the photo library.

    Asynchronous operations report through a completion callback that receives
    ``None`` on success or the exception describing the failure. Callbacks may
    fire on any thread and, for live photos, more than once.
    """

    def resolve_album(self, album_id: str) -> Optional[Album]:
        """Return the album with the given identifier, or None if it is gone."""
        ...

    def fetch_assets(
        self, album: Album, identifiers: Optional[Iterable[str]] = None
    ) -> Sequence[AssetRecord]:
        """Enumerate assets in an album, optionally restricted to identifiers."""
        ...

    def current_change_token(self) -> ChangeToken:
        """Return the token describing the library's present state."""
        ...

    def fetch_changes(self, since: ChangeToken) -> Iterable[ChangeDetails]:
        """Return change log entries recorded after ``since``.

        Raises:
            ChangeTokenExpiredError: If the token is too old to resolve.
            ChangeDetailsUnavailableError: If details cannot be produced.
        """
        ...

    def request_image_data(self, asset: AssetRecord) -> bytes:
        """Synchronously return original image bytes using only local data.

        Raises:
            AssetUnavailableError: If the data is only available in the cloud.
            AssetCodecError: If the image cannot be decoded.
        """
        ...

    def export_video(
        self, asset: AssetRecord, destination: Path, completion: ExportCompletion
    ) -> None:
        """Start a pass-through video export session writing to ``destination``."""
        ...

    def write_live_photo_video(
        self, asset: AssetRecord, destination: Path, completion: ExportCompletion
    ) -> None:
        """Write the paired video component of a live photo to ``destination``."""
        ...

    def add_assets_to_album(self, album_id: str, asset_ids: Sequence[str]) -> None:
        """Add assets to an album in one batch."""
        ...

    def delete_assets(self, asset_ids: Sequence[str]) -> None:
        """Delete assets from the library in one batch."""
        ...


__all__ = [
    "PhotoLibrary",
    "ExportCompletion",
    "Album",
    "AssetRecord",
    "ChangeDetails",
    "ChangeToken",
    "MediaType",
    "PhotoLibraryError",
    "ChangeTokenExpiredError",
    "ChangeDetailsUnavailableError",
    "AssetUnavailableError",
    "AssetCodecError",
]
