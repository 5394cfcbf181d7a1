"""Single dispatch point for run state updates."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)


class StateDispatcher:
    """Execute state callbacks one at a time on a dedicated worker thread.

    Every mutation of published run state goes through ``submit`` so that
    listeners observe updates in order and never concurrently.
    """

    def __init__(self, name: str = "photobackup-state") -> None:
        self._name = name
        self._queue: queue.Queue[Optional[Callable[[], None]]] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def submit(self, callback: Callable[[], None]) -> None:
        """Queue a callback for execution on the dispatcher thread."""
        self._ensure_worker()
        self._queue.put(callback)

    def flush(self) -> None:
        """Block until every callback submitted so far has run."""
        self._queue.join()

    def close(self, timeout: float | None = 5) -> None:
        """Stop the worker thread after draining pending callbacks."""
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return
        self._queue.put(None)
        thread.join(timeout=timeout)

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._run_loop, name=self._name, daemon=True)
            self._thread.start()

    def _run_loop(self) -> None:
        while True:
            callback = self._queue.get()
            try:
                if callback is None:
                    return
                callback()
            except Exception:
                LOGGER.exception("State listener failed")
            finally:
                self._queue.task_done()
