"""Snapshot engine error taxonomy."""

from __future__ import annotations

from pathlib import Path


class CheckpointError(Exception):
    """Base class for all engine failures."""


class SourceNotFound(CheckpointError):
    """The save location to snapshot does not exist."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Save location does not exist: {path}")


class SnapshotNotFound(CheckpointError):
    """No snapshot directory with the given id."""

    def __init__(self, snapshot_id: str, game_id: str = "") -> None:
        self.snapshot_id = snapshot_id
        self.game_id = game_id
        super().__init__(f"Snapshot not found: {snapshot_id}")


class SnapshotMetadataNotFound(CheckpointError):
    """The snapshot directory has no sidecar."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Snapshot metadata not found: {path}")


class CorruptMetadata(CheckpointError):
    """The sidecar exists but cannot be parsed."""

    def __init__(self, reason: str, path: str | Path | None = None) -> None:
        self.reason = reason
        self.path = Path(path) if path is not None else None
        where = f" ({path})" if path is not None else ""
        super().__init__(f"Corrupt snapshot metadata{where}: {reason}")


class IoError(CheckpointError):
    """
    Wraps an OS-level read/write/copy/remove failure.

    The original ``OSError`` is kept as ``__cause__`` (raise ... from e).
    """

    def __init__(self, action: str, path: str | Path | None = None, cause: BaseException | None = None) -> None:
        self.action = action
        self.path = Path(path) if path is not None else None
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to {action}{detail}")


class GameNotFound(CheckpointError):
    """Unknown game id in the configuration."""

    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Game not found: {game_id}")


class OperationInProgress(CheckpointError):
    """Another mutating operation is already running for this game."""

    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Another operation is already running for game {game_id}")


class LocationOverlap(CheckpointError):
    """The save location and the backup root contain one another."""

    def __init__(self, save_location: str | Path, backup_root: str | Path) -> None:
        self.save_location = Path(save_location)
        self.backup_root = Path(backup_root)
        super().__init__(
            f"Save location {save_location} and backup location {backup_root} must not contain one another"
        )
