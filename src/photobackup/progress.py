"""Run progress states published while a back-up is in flight."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RunPhase(str, Enum):
    """Phases of a back-up run, in the order they are entered."""

    NOT_STARTED = "not-started"
    STARTING = "starting"
    EXPORTING_PHOTOS = "exporting-photos"
    EXPORTING_VIDEOS = "exporting-videos"
    EXPORTING_LIVE_PHOTOS = "exporting-live-photos"
    SELECTING = "selecting"
    PURGING = "purging"
    FINISHED = "finished"


_EXPORTING_PHASES = frozenset(
    {RunPhase.EXPORTING_PHOTOS, RunPhase.EXPORTING_VIDEOS, RunPhase.EXPORTING_LIVE_PHOTOS}
)

_DESCRIPTIONS = {
    RunPhase.NOT_STARTED: "Not started",
    RunPhase.STARTING: "Preparing to save photos and videos",
    RunPhase.EXPORTING_PHOTOS: "Saving photos",
    RunPhase.EXPORTING_VIDEOS: "Saving videos",
    RunPhase.EXPORTING_LIVE_PHOTOS: "Saving live photos",
    RunPhase.SELECTING: "Selecting files to be synchronized",
    RunPhase.PURGING: "Removing originals",
    RunPhase.FINISHED: "Finished",
}


@dataclass(frozen=True, slots=True)
class RunState:
    """Snapshot of a run's progress.

    Attributes:
        phase: Current phase of the run.
        index: Zero-based index of the item being processed.
        total: Number of items in the current phase.
        current: Display label of the item being processed.
        saved: Number of files saved, set once the run finished successfully.
        purged: Number of originals removed; None when purging did not run.
        error: Human-readable failure, set when the run finished with an error.
    """

    phase: RunPhase = RunPhase.NOT_STARTED
    index: int = 0
    total: int = 0
    current: Optional[str] = None
    saved: Optional[int] = None
    purged: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def exporting(
        cls, phase: RunPhase, index: int, total: int, current: Optional[str] = None
    ) -> "RunState":
        return cls(phase=phase, index=index, total=total, current=current)

    @classmethod
    def finished(cls, saved: int, purged: Optional[int] = None) -> "RunState":
        return cls(phase=RunPhase.FINISHED, saved=saved, purged=purged)

    @classmethod
    def failed(cls, message: str) -> "RunState":
        return cls(phase=RunPhase.FINISHED, error=message)

    @property
    def is_terminal(self) -> bool:
        return self.phase is RunPhase.FINISHED

    @property
    def succeeded(self) -> bool:
        return self.is_terminal and self.error is None

    @property
    def step_progress(self) -> float:
        """Return the completed fraction of the current phase."""
        if self.phase in _EXPORTING_PHASES:
            return self.index / self.total if self.total > 0 else 1.0
        if self.phase in {RunPhase.STARTING, RunPhase.SELECTING, RunPhase.PURGING}:
            return 0.0
        return 1.0

    @property
    def badge_text(self) -> str:
        """Return a short "n of total" label for exporting phases."""
        if self.phase in _EXPORTING_PHASES and self.total > 0:
            return f"{self.index + 1} of {self.total}"
        return ""

    @property
    def description(self) -> str:
        """Return a human-readable description of the state."""
        if self.error is not None:
            return f"Failed: {self.error}"
        return _DESCRIPTIONS[self.phase]


__all__ = ["RunPhase", "RunState"]
