"""Single-resolution adapters for callback-based library operations."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.25


class SingleResolutionFuture:
    """Future that accepts the first completion and ignores any later ones.

    Some library callbacks fire more than once for the same request; only the
    first call decides the outcome.
    """

    def __init__(self, label: str = "") -> None:
        self.label = label
        self._future: Future[None] = Future()
        self._lock = threading.Lock()

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, error: Optional[BaseException] = None) -> bool:
        """Complete the future, successfully when ``error`` is None.

        Args:
            error: Failure reported by the callback, if any.

        Returns:
            bool: False when the future had already been resolved.
        """
        with self._lock:
            if self._future.done():
                LOGGER.debug("Ignoring repeated completion for %s", self.label)
                return False
            if error is None:
                self._future.set_result(None)
            else:
                self._future.set_exception(error)
            return True

    def wait(
        self,
        cancel_event: Optional[threading.Event] = None,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> bool:
        """Block until the future resolves or cancellation is requested.

        Args:
            cancel_event: Event signalling that the caller gave up.
            poll_interval: Seconds between cancellation checks.

        Returns:
            bool: True when resolved successfully, False when abandoned.

        Raises:
            BaseException: The error the callback resolved the future with.
        """
        while True:
            try:
                self._future.result(timeout=poll_interval)
                return True
            except FutureTimeoutError:
                if cancel_event is not None and cancel_event.is_set():
                    return False
