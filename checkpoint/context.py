"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from checkpoint.commands import CheckpointCommands
    from checkpoint.config import Config
    from checkpoint.core.restore import RestoreManager
    from checkpoint.core.snapshot_store import SnapshotStore


@dataclass
class AppContext:
    """Central service container handed to the host (CLI or UI shell)."""

    config: Config
    snapshot_store: SnapshotStore
    restore_manager: RestoreManager
    commands: CheckpointCommands
