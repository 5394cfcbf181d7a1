"""Change tracking built on the library's persistent change tokens."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet

from photobackup.library import (
    ChangeDetailsUnavailableError,
    ChangeToken,
    ChangeTokenExpiredError,
    PhotoLibrary,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChangeDelta:
    """Outcome of a delta request.

    Attributes:
        identifiers: Asset identifiers inserted or updated since the token.
        expired: True when the token could not be resolved; callers should
            discard it and fall back to a full export.
    """

    identifiers: FrozenSet[str] = field(default_factory=frozenset)
    expired: bool = False

    @classmethod
    def expired_token(cls) -> "ChangeDelta":
        return cls(expired=True)

    @property
    def is_empty(self) -> bool:
        return not self.expired and not self.identifiers


class ChangeTracker:
    """Compute which assets changed since a previously stored token."""

    def __init__(self, library: PhotoLibrary) -> None:
        self._library = library

    def current_token(self) -> ChangeToken:
        """Return the library's present change token."""
        return self._library.current_change_token()

    def delta(self, since: ChangeToken) -> ChangeDelta:
        """Return identifiers inserted or updated after ``since``.

        Args:
            since: Token stored by a previous successful run.

        Returns:
            ChangeDelta: Changed identifiers, or the expired signal when the
            library reports the token expired or its details unavailable.
        """
        changed: set[str] = set()
        try:
            for details in self._library.fetch_changes(since):
                changed.update(details.inserted)
                changed.update(details.updated)
        except (ChangeTokenExpiredError, ChangeDetailsUnavailableError) as exc:
            LOGGER.warning("Change token expired or details unavailable: %s", exc)
            return ChangeDelta.expired_token()
        return ChangeDelta(identifiers=frozenset(changed))
