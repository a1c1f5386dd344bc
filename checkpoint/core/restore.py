"""Restore manager — put a snapshot back over a game's live save directory."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from checkpoint.core.copier import copy_tree
from checkpoint.core.errors import CorruptMetadata, IoError, SnapshotNotFound
from checkpoint.core.metadata import SIDECAR_NAME
from checkpoint.core.process import ProcessChecker, is_process_running
from checkpoint.core.snapshot_store import Clock, utc_now
from checkpoint.core.verifier import verify
from checkpoint.models.snapshot import RestoreOutcome, RestoreResult

if TYPE_CHECKING:
    from checkpoint.core.snapshot_store import SnapshotStore
    from checkpoint.models.game import Game

AUTO_BACKUP_PREFIX = "Auto-backup before restore"


class RestoreManager:
    """
    Restore protocol:

      1. refuse while the game is running, or if the save location and
         backup root contain one another (LocationOverlap)
      2. the snapshot must exist
      3. refuse if the snapshot fails verification
      4. snapshot the current live saves (safety backup) and verify it;
         a root-level file with the sidecar name aborts before this step
      5. re-check the game process, then clear the live directory
      6. copy the snapshot's files in

    I/O failures in 4-6 are reported as FAILED and are not rolled back;
    the safety backup is the recovery path. Once step 5 starts the
    operation must run to completion, it cannot be cancelled.
    """

    def __init__(
        self,
        store: SnapshotStore,
        process_checker: ProcessChecker | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._is_running = process_checker or is_process_running
        self._clock = clock or utc_now

    def _game_running(self, game: Game) -> bool:
        return bool(game.exe_name) and self._is_running(game.exe_name)

    def _rejected_running(self, game: Game) -> RestoreResult:
        logger.warning(f"Restore refused: {game.exe_name} is running")
        return RestoreResult(
            outcome=RestoreOutcome.REJECTED_RUNNING,
            message=f"Cannot restore: {game.exe_name} is currently running. Please close the game first.",
        )

    def restore(self, snapshot_id: str, game: Game) -> RestoreResult:
        """Restore *snapshot_id* into ``game.save_location``."""
        if self._game_running(game):
            return self._rejected_running(game)

        self._store.check_separate(game.save_path)

        snapshot_path = self._store.snapshot_path(game.id, snapshot_id)
        if not snapshot_path.is_dir():
            raise SnapshotNotFound(snapshot_id, game.id)

        try:
            intact = verify(snapshot_path)
        except CorruptMetadata as e:
            logger.warning(f"Snapshot {snapshot_id} has unreadable metadata: {e}")
            intact = False
        if not intact:
            return RestoreResult(
                outcome=RestoreOutcome.REJECTED_CORRUPT,
                message="Snapshot verification failed. Files may be corrupted.",
            )

        save_path = game.save_path
        result = RestoreResult(outcome=RestoreOutcome.SUCCEEDED)

        reserved = save_path / SIDECAR_NAME
        if reserved.is_file():
            return self._failed(
                result,
                IoError(f"back up reserved file {SIDECAR_NAME}", reserved),
                f"Live saves contain a file named {SIDECAR_NAME}, which a snapshot cannot hold; "
                "live saves were left untouched.",
            )

        try:
            if save_path.exists():
                backup = self._store.create(
                    game.id,
                    save_path,
                    f"{AUTO_BACKUP_PREFIX} {self._clock().strftime('%Y-%m-%d %H:%M:%S')}",
                )
                result.backed_up_current = True
                result.backup_snapshot_id = backup.id
                logger.info(f"Safety backup {backup.id} created before restoring {snapshot_id}")

                if not verify(backup.path):
                    return self._failed(
                        result,
                        IoError("verify safety backup", backup.path),
                        "Safety backup could not be verified; live saves were left untouched.",
                    )

                if self._game_running(game):
                    rejected = self._rejected_running(game)
                    rejected.backed_up_current = result.backed_up_current
                    rejected.backup_snapshot_id = result.backup_snapshot_id
                    return rejected

                self._clear_directory(save_path)
            else:
                try:
                    save_path.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise IoError("create save directory", save_path, e) from e

            copy_tree(snapshot_path, save_path, exclude=(SIDECAR_NAME,))
        except IoError as e:
            return self._failed(result, e, f"Restore failed: {e}")

        result.message = "Restore completed successfully"
        logger.info(f"Restored snapshot {snapshot_id} into {save_path}")
        return result

    def _failed(self, result: RestoreResult, error: IoError, message: str) -> RestoreResult:
        result.outcome = RestoreOutcome.FAILED
        result.error = error
        result.message = message
        if result.backup_snapshot_id:
            result.message += f" Previous saves are kept in snapshot {result.backup_snapshot_id}."
        logger.error(result.message)
        return result

    @staticmethod
    def _clear_directory(path: Path) -> None:
        """Remove every entry directly under *path*, keeping *path* itself."""
        try:
            entries = list(path.iterdir())
        except OSError as e:
            raise IoError("read save directory", path, e) from e

        for entry in entries:
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as e:
                raise IoError(f"remove {entry.name}", entry, e) from e
