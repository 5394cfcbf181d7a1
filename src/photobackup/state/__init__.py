"""State persistence helpers for photo back-ups."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from photobackup.library.models import ChangeToken

from .errors import MissingStateError, StateError
from .models import BackupState

DEFAULT_STATE_DIR = Path("~/.photobackup")
STATE_FILENAME = "state.json"

LOGGER = logging.getLogger(__name__)


class StateRepository:
    """Manage the persisted change token and completion timestamp."""

    def __init__(self, state_dir: Path | None = None) -> None:
        """Initialize the repository.

        Args:
            state_dir: Directory that stores the state file.
        """
        self._state_dir = (state_dir or DEFAULT_STATE_DIR).expanduser()
        self._lock = threading.RLock()

    @property
    def state_path(self) -> Path:
        """Return the path of the state file.

        Returns:
            Path: Location of ``state.json``.
        """
        return self._state_dir / STATE_FILENAME

    def load(self) -> BackupState:
        """Load the persisted state.

        Returns:
            BackupState: Deserialized state model.

        Raises:
            MissingStateError: If no state file is present.
            StateError: If stored data cannot be read or parsed.
        """
        path = self.state_path
        with self._lock:
            if not path.exists():
                raise MissingStateError(f"No back-up state found at {path}")
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                return BackupState.model_validate(data)
            except (json.JSONDecodeError, UnicodeDecodeError, OSError, ValidationError) as exc:
                raise StateError(f"Invalid back-up state data: {exc}") from exc

    def load_or_default(self) -> BackupState:
        """Return the persisted state, or a fresh state when none exists."""
        try:
            return self.load()
        except MissingStateError:
            return BackupState()

    def _load_for_update(self) -> BackupState:
        try:
            return self.load_or_default()
        except StateError as exc:
            LOGGER.warning("Discarding unreadable back-up state at %s: %s", self.state_path, exc)
            return BackupState()

    def save(self, state: BackupState) -> None:
        """Persist the given state.

        Args:
            state: State model to serialize to disk.
        """
        with self._lock:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            state.updated_at = datetime.now(timezone.utc)
            payload = state.model_dump(mode="json")
            self.state_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def load_change_token(self) -> Optional[ChangeToken]:
        """Return the change token of the last successful run, if any.

        Returns:
            ChangeToken | None: Decoded token, or None when absent or corrupt.
        """
        return ChangeToken.from_text(self.load_or_default().change_token)

    def reset_change_token(self) -> None:
        """Forget the stored change token so the next run scans everything."""
        with self._lock:
            try:
                state = self.load()
            except MissingStateError:
                state = BackupState()
            except StateError as exc:
                LOGGER.warning(
                    "Discarding unreadable back-up state at %s: %s", self.state_path, exc
                )
                state = BackupState()
            else:
                if state.change_token is None:
                    return
            state.change_token = None
            self.save(state)

    def record_completion(
        self, completed_at: datetime, token: Optional[ChangeToken] = None
    ) -> None:
        """Record a completed run.

        Args:
            completed_at: Wall-clock completion time.
            token: Token to store; the previous token is kept when None.
        """
        with self._lock:
            state = self._load_for_update()
            state.last_completed_at = completed_at
            if token is not None:
                state.change_token = token.to_text()
            self.save(state)


__all__ = [
    "StateRepository",
    "DEFAULT_STATE_DIR",
    "BackupState",
    "StateError",
    "MissingStateError",
]
