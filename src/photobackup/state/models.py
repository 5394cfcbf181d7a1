"""Persisted back-up state models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class BackupState(BaseModel):
    """Durable bookkeeping carried across back-up runs.

    Attributes:
        change_token: Base64-encoded change token of the last successful run.
        last_completed_at: Wall-clock time the last run completed.
        updated_at: Time the state file was last written.
    """

    change_token: Optional[str] = None
    last_completed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["BackupState"]
