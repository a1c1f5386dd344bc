"""Snapshot models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from checkpoint.core.errors import CheckpointError


@dataclass
class SnapshotMetadata:
    """Sidecar record persisted inside each snapshot directory."""

    id: str
    game_id: str
    timestamp: datetime  # UTC
    name: str
    size: int
    file_count: int
    extras: dict[str, Any] = field(default_factory=dict)  # unknown fields, kept on rewrite


@dataclass
class Snapshot:
    """In-memory snapshot: sidecar fields plus the directory it was read from."""

    id: str
    game_id: str
    timestamp: datetime
    name: str
    path: Path
    size: int = 0
    file_count: int = 0

    @classmethod
    def from_metadata(cls, meta: SnapshotMetadata, path: Path) -> Snapshot:
        return cls(
            id=meta.id,
            game_id=meta.game_id,
            timestamp=meta.timestamp,
            name=meta.name,
            path=path,
            size=meta.size,
            file_count=meta.file_count,
        )


class RestoreOutcome(StrEnum):
    """Terminal states of a restore."""

    SUCCEEDED = "succeeded"
    REJECTED_RUNNING = "rejected_running"
    REJECTED_CORRUPT = "rejected_corrupt"
    FAILED = "failed"


@dataclass
class RestoreResult:
    """Result of a restore operation."""

    outcome: RestoreOutcome
    message: str = ""
    backed_up_current: bool = False
    backup_snapshot_id: str | None = None
    error: CheckpointError | None = None

    @property
    def success(self) -> bool:
        return self.outcome is RestoreOutcome.SUCCEEDED
