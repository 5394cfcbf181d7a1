"""Run controller owning the photo back-up state machine."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from functools import partial
from typing import Callable, FrozenSet, Optional

from photobackup.changes import ChangeTracker
from photobackup.classification import AssetClassifier
from photobackup.config.models import BackupConfiguration, MediaCategory
from photobackup.export import (
    BackupCancelledError,
    BackupConfigurationError,
    CancellingExportError,
    ExportPipeline,
    ExportResult,
)
from photobackup.host import BackgroundHost, UnboundedHost
from photobackup.library import ChangeToken, PhotoLibrary, PhotoLibraryError
from photobackup.planning import PathPlanner
from photobackup.progress import RunPhase, RunState
from photobackup.purge import PurgeManager
from photobackup.selection import SelectionCoordinator
from photobackup.state import StateError, StateRepository
from photobackup.sync import (
    SyncEngine,
    SyncEngineError,
    SyncFolder,
    is_suitable_backup_destination,
    paused,
)

from .dispatch import StateDispatcher

LOGGER = logging.getLogger(__name__)

BACKGROUND_TASK_NAME = "Photo back-up"

StateListener = Callable[[RunState], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunController:
    """Start, track and cancel photo back-up runs.

    At most one run is in flight at a time; triggering a run while another is
    active does nothing. Each run executes on its own worker thread and
    publishes its progress through a single ``StateDispatcher``.
    """

    def __init__(
        self,
        library: PhotoLibrary,
        engine: SyncEngine,
        repository: StateRepository,
        *,
        configuration: Callable[[], BackupConfiguration],
        host: Optional[BackgroundHost] = None,
        dispatcher: Optional[StateDispatcher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the controller.

        Args:
            library: Photo library collaborator.
            engine: Synchronization engine collaborator.
            repository: Store for the change token and completion time.
            configuration: Callable returning the current back-up settings.
            host: Background-execution facility of the host.
            dispatcher: Dispatcher that serializes state updates.
            clock: Source of the current time.
        """
        self._library = library
        self._engine = engine
        self._repository = repository
        self._configuration = configuration
        self._host = host or UnboundedHost()
        self._dispatcher = dispatcher or StateDispatcher()
        self._clock = clock
        self._lock = threading.Lock()
        self._task: Optional[threading.Thread] = None
        self._last_task: Optional[threading.Thread] = None
        self._cancel_event: Optional[threading.Event] = None
        self._state = RunState()
        self._listeners: list[StateListener] = []

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> RunState:
        """Return the most recently published run state."""
        return self._state

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._task is not None

    @property
    def last_completed_at(self) -> Optional[datetime]:
        """Return when the last run completed, if ever."""
        try:
            return self._repository.load_or_default().last_completed_at
        except StateError as exc:
            LOGGER.warning("Could not read back-up state: %s", exc)
            return None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for published run states.

        Args:
            listener: Callable invoked on the dispatcher thread.

        Returns:
            Callable[[], None]: Function that removes the listener again.
        """
        self._dispatcher.submit(partial(self._listeners.append, listener))

        def _unsubscribe() -> None:
            self._dispatcher.submit(partial(self._remove_listener, listener))

        return _unsubscribe

    def start(
        self, *, full_export: bool = False, in_background: bool = False
    ) -> Optional[threading.Thread]:
        """Start a back-up run unless one is already active.

        Args:
            full_export: Export every asset regardless of previous runs.
            in_background: Whether the run is constrained by background time.

        Returns:
            threading.Thread | None: Worker running the back-up, or None when
            the configuration is incomplete or a run is already active.
        """
        return self._start(self._configuration(), full_export, in_background)

    def start_background(self) -> Optional[threading.Thread]:
        """Start an incremental background run if background copy is enabled."""
        config = self._configuration()
        if not config.background_copy:
            LOGGER.debug("Background copy disabled; not starting photo back-up")
            return None
        return self._start(config, False, True)

    def cancel(self) -> None:
        """Request cancellation of the active run, if any."""
        with self._lock:
            if self._cancel_event is not None:
                LOGGER.info("Cancelling photo back-up")
                self._cancel_event.set()

    def wait(self, timeout: Optional[float] = None) -> RunState:
        """Wait for the active run to finish and all updates to be published.

        Args:
            timeout: Maximum seconds to wait for the worker thread.

        Returns:
            RunState: The latest published state.
        """
        with self._lock:
            task = self._last_task
        if task is not None:
            task.join(timeout)
        self._dispatcher.flush()
        return self._state

    def reset_change_token(self) -> None:
        """Discard the stored change token so the next run scans the album."""
        self._repository.reset_change_token()

    # ------------------------------------------------------------------ #
    # Run lifecycle                                                      #
    # ------------------------------------------------------------------ #

    def _start(
        self, config: BackupConfiguration, full_export: bool, in_background: bool
    ) -> Optional[threading.Thread]:
        if not config.is_ready:
            LOGGER.info("Photo back-up is not configured; not starting")
            return None

        with self._lock:
            if self._task is not None:
                LOGGER.info("Photo back-up already running; ignoring trigger")
                return None
            cancel_event = threading.Event()
            task = threading.Thread(
                target=self._run,
                args=(config, full_export, in_background, cancel_event),
                name="photobackup-run",
                daemon=True,
            )
            self._task = task
            self._last_task = task
            self._cancel_event = cancel_event
            task.start()
        return task

    def _run(
        self,
        config: BackupConfiguration,
        full_export: bool,
        in_background: bool,
        cancel_event: threading.Event,
    ) -> None:
        self._publish(RunState(phase=RunPhase.STARTING))
        try:
            final = self._execute(config, full_export, in_background, cancel_event)
        except BackupConfigurationError as exc:
            LOGGER.warning("Photo back-up cannot start: %s", exc)
            final = RunState.failed(str(exc))
        except BackupCancelledError as exc:
            LOGGER.info("Photo back-up cancelled")
            final = RunState.failed(str(exc) or "Cancelled")
        except CancellingExportError as exc:
            LOGGER.error("Photo back-up aborted: %s", exc)
            final = RunState.failed(str(exc))
        except Exception as exc:
            LOGGER.exception("Photo back-up failed")
            final = RunState.failed(str(exc))
        self._dispatcher.submit(partial(self._finish, final))

    def _execute(
        self,
        config: BackupConfiguration,
        full_export: bool,
        in_background: bool,
        cancel_event: threading.Event,
    ) -> RunState:
        folder = self._resolve_folder(config)

        def _on_expiration() -> None:
            LOGGER.info("Cancelling background task due to expiration")
            cancel_event.set()

        handle = self._host.begin_background_task(BACKGROUND_TASK_NAME, _on_expiration)
        try:
            return self._backup(config, folder, full_export, in_background, cancel_event)
        finally:
            LOGGER.info("Signalling end of background task")
            self._host.end_background_task(handle)

    def _backup(
        self,
        config: BackupConfiguration,
        folder: SyncFolder,
        full_export: bool,
        in_background: bool,
        cancel_event: threading.Event,
    ) -> RunState:
        self._log_time_remaining()
        tracker = ChangeTracker(self._library)
        token: Optional[ChangeToken] = None
        try:
            token = tracker.current_token()
        except PhotoLibraryError as exc:
            LOGGER.warning("Could not obtain current change token: %s", exc)

        identifiers: Optional[FrozenSet[str]] = None
        previous = self._stored_token()
        if previous is not None and not full_export:
            delta = tracker.delta(previous)
            if delta.expired:
                LOGGER.warning("Resetting the saved change token; performing a full scan")
                self._repository.reset_change_token()
            elif delta.is_empty:
                LOGGER.info("Nothing changed and not a full export, finishing early")
                if config.purge_enabled:
                    # TODO: purge eligibility is time-based; run the purge stage here too.
                    LOGGER.warning("Purge skipped because nothing changed since the last run")
                self._repository.record_completion(self._clock())
                return RunState.finished(saved=0, purged=None)
            else:
                identifiers = delta.identifiers

        purge = PurgeManager(
            self._library,
            enabled=config.purge_enabled,
            purge_after_days=config.purge_after_days,
            device_id=self._engine.short_device_id(),
            clock=self._clock,
        )

        with paused(folder):
            result = self._export(config, folder, identifiers, full_export, purge, cancel_event)

        self._tag_saved(config, result)

        purged: Optional[int] = None
        if purge.enabled and not in_background:
            if purge.candidates:
                self._publish(RunState(phase=RunPhase.PURGING))
            purged = purge.purge(in_background=in_background)

        self._repository.record_completion(self._clock(), token)
        LOGGER.info("Photo back-up done")
        self._log_time_remaining()
        return RunState.finished(saved=len(result.saved_identifiers), purged=purged)

    def _export(
        self,
        config: BackupConfiguration,
        folder: SyncFolder,
        identifiers: Optional[FrozenSet[str]],
        full_export: bool,
        purge: PurgeManager,
        cancel_event: threading.Event,
    ) -> ExportResult:
        try:
            root = folder.local_path()
        except SyncEngineError as exc:
            raise CancellingExportError(f"Could not resolve folder path: {exc}") from exc

        planner = PathPlanner(
            config.folder_structure,
            subdirectory=config.subdirectory,
            time_zone=config.time_zone,
        )
        if planner.root_segments:
            subdirectory = root.joinpath(*planner.root_segments)
            try:
                subdirectory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise CancellingExportError(
                    f"Could not create directory {subdirectory}: {exc}"
                ) from exc

        album = self._library.resolve_album(config.album_id)
        if album is None:
            raise BackupConfigurationError("Could not find selected album")
        assets = self._library.fetch_assets(album, identifiers)

        pipeline = ExportPipeline(
            self._library,
            folder,
            planner,
            AssetClassifier(config.categories, max_age_days=config.max_age_days, clock=self._clock),
            root=root,
            full_export=full_export,
            purge=purge,
            cancel_event=cancel_event,
            progress=self._publish,
        )
        selection = SelectionCoordinator(folder)

        result = pipeline.scan(assets)
        # Start photo downloads on other devices while videos are exported.
        self._select(selection, result)
        self._raise_if_cancelled(cancel_event)

        if MediaCategory.VIDEO in config.categories:
            self._log_time_remaining()
            pipeline.export_videos(result)
            self._raise_if_cancelled(cancel_event)

        if MediaCategory.LIVE_PHOTO in config.categories:
            self._log_time_remaining()
            pipeline.export_live_photos(result)
            self._raise_if_cancelled(cancel_event)

        self._select(selection, result)
        return result

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _resolve_folder(self, config: BackupConfiguration) -> SyncFolder:
        folder = self._engine.folder(config.folder_id)
        if folder is None:
            raise BackupConfigurationError(
                f"Cannot find selected folder with ID '{config.folder_id}'"
            )
        if not folder.exists():
            raise BackupConfigurationError("Selected folder does not exist")
        if not is_suitable_backup_destination(folder):
            raise BackupConfigurationError("The selected folder cannot be used to save photos to")
        return folder

    def _stored_token(self) -> Optional[ChangeToken]:
        try:
            return self._repository.load_change_token()
        except StateError as exc:
            LOGGER.warning("Ignoring unreadable change token: %s", exc)
            return None

    def _select(self, selection: SelectionCoordinator, result: ExportResult) -> None:
        if not selection.enabled:
            return
        self._publish(RunState(phase=RunPhase.SELECTING))
        self._log_time_remaining()
        selection.select(result.selected_paths)

    def _tag_saved(self, config: BackupConfiguration, result: ExportResult) -> None:
        if not config.saved_album_id or not result.saved_assets:
            return
        LOGGER.info("Tagging %d saved items", len(result.saved_assets))
        try:
            if self._library.resolve_album(config.saved_album_id) is None:
                LOGGER.warning("Saved album %s not found; not tagging", config.saved_album_id)
                return
            self._library.add_assets_to_album(config.saved_album_id, result.saved_identifiers)
        except PhotoLibraryError as exc:
            LOGGER.warning("Could not tag saved items: %s", exc)

    def _raise_if_cancelled(self, cancel_event: threading.Event) -> None:
        if cancel_event.is_set():
            raise BackupCancelledError("Cancelled")

    def _log_time_remaining(self) -> None:
        remaining = self._host.time_remaining()
        if remaining is not None:
            LOGGER.info("Background time remaining: %.1fs", remaining)

    def _publish(self, state: RunState) -> None:
        self._dispatcher.submit(partial(self._apply_state, state))

    def _finish(self, final: RunState) -> None:
        # The slot frees only after every state of this run has been published.
        with self._lock:
            self._task = None
            self._cancel_event = None
        self._apply_state(final)

    def _apply_state(self, state: RunState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
