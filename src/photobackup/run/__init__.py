"""Run orchestration for photo back-ups."""

from photobackup.progress import RunPhase, RunState

from .controller import RunController
from .dispatch import StateDispatcher

__all__ = ["RunController", "RunPhase", "RunState", "StateDispatcher"]
