"""Export target models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class ExportTarget:
    """Folder-relative destinations planned for one asset.

    Attributes:
        directory: Directory holding the primary file ("" for the folder root).
        path: Relative path of the primary file.
        live_directory: Directory holding the live-photo video, if any.
        live_path: Relative path of the live-photo video, if any.
    """

    directory: str
    path: str
    live_directory: Optional[str] = None
    live_path: Optional[str] = None
