"""Interface to the host's background-execution facility."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol


class BackgroundHost(Protocol):
    """Grants a bounded amount of execution time while the app is backgrounded."""

    def begin_background_task(self, name: str, on_expiration: Callable[[], None]) -> Any:
        """Request background time; ``on_expiration`` fires when it runs out."""
        ...

    def end_background_task(self, handle: Any) -> None:
        """Release background time acquired through ``begin_background_task``."""
        ...

    def time_remaining(self) -> Optional[float]:
        """Return the seconds of background time left, if known."""
        ...


class UnboundedHost:
    """Host without a background budget; expiration never fires."""

    def begin_background_task(self, name: str, on_expiration: Callable[[], None]) -> Any:
        return name

    def end_background_task(self, handle: Any) -> None:
        return None

    def time_remaining(self) -> Optional[float]:
        return None


__all__ = ["BackgroundHost", "UnboundedHost"]
