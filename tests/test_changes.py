"""Change tracker tests."""

from __future__ import annotations

import pytest

from photobackup.changes import ChangeDelta, ChangeTracker
from photobackup.library import (
    ChangeDetailsUnavailableError,
    ChangeToken,
    ChangeTokenExpiredError,
)

from conftest import FakePhotoLibrary


def test_consecutive_tokens_yield_empty_delta(library: FakePhotoLibrary) -> None:
    tracker = ChangeTracker(library)
    token = tracker.current_token()

    delta = tracker.delta(token)

    assert delta.is_empty
    assert not delta.expired


def test_delta_unions_inserted_and_updated(library: FakePhotoLibrary) -> None:
    tracker = ChangeTracker(library)
    token = tracker.current_token()
    library.record_change(inserted={"a", "b"})
    library.record_change(updated={"b", "c"})

    delta = tracker.delta(token)

    assert delta.identifiers == frozenset({"a", "b", "c"})
    assert not delta.is_empty


@pytest.mark.parametrize(
    "error",
    [ChangeTokenExpiredError("gone"), ChangeDetailsUnavailableError("unavailable")],
)
def test_expiry_errors_return_expired_signal(
    library: FakePhotoLibrary, error: Exception
) -> None:
    library.change_error = error

    delta = ChangeTracker(library).delta(ChangeToken(b"0"))

    assert delta.expired
    assert not delta.is_empty
    assert delta.identifiers == frozenset()


def test_expired_token_factory() -> None:
    assert ChangeDelta.expired_token() == ChangeDelta(expired=True)


def test_change_token_text_round_trip_and_corrupt_values() -> None:
    token = ChangeToken(b"\x00\x01revision")

    assert ChangeToken.from_text(token.to_text()) == token
    assert ChangeToken.from_text(None) is None
    assert ChangeToken.from_text("") is None
    assert ChangeToken.from_text("not base64!") is None
