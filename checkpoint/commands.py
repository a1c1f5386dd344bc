"""Host-facing entry points, one per user action."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from checkpoint.core.errors import CheckpointError, SnapshotNotFound
from checkpoint.core.process import ProcessChecker, is_process_running
from checkpoint.core.verifier import verify
from checkpoint.models.game import Game
from checkpoint.utils import sanitize_filename

if TYPE_CHECKING:
    from checkpoint.config import Config
    from checkpoint.core.restore import RestoreManager
    from checkpoint.core.snapshot_store import SnapshotStore
    from checkpoint.models.snapshot import RestoreResult, Snapshot


class CheckpointCommands:
    """
    Thin facade over the config and the snapshot engine.

    Resolves games from the config (raising GameNotFound for unknown ids)
    and delegates. Every call blocks; UI hosts should dispatch through
    ``checkpoint.workers`` instead of calling these on the UI thread.
    """

    def __init__(
        self,
        config: Config,
        store: SnapshotStore,
        restore_manager: RestoreManager,
        process_checker: ProcessChecker | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._restore = restore_manager
        self._is_running = process_checker or is_process_running

    # ── Config ──

    def get_config(self) -> dict[str, Any]:
        return {
            "backup_location": str(self._config.backup_location),
            "games": [g.to_dict() for g in self._config.games],
        }

    def set_backup_location(self, path: str | Path) -> None:
        self._config.backup_location = Path(path)
        logger.info(f"Backup location set to {path}")

    # ── Games ──

    def add_game(
        self,
        name: str,
        save_location: str | Path,
        exe_name: str | None = None,
    ) -> Game:
        game = Game.new(name, Path(save_location), exe_name)
        return self._config.add_game(game)

    def list_games(self) -> list[Game]:
        return self._config.games

    def update_game(
        self,
        game_id: str,
        name: str | None = None,
        save_location: str | Path | None = None,
        exe_name: str | None = None,
    ) -> Game:
        return self._config.update_game(
            game_id,
            name=name,
            save_location=str(save_location) if save_location is not None else None,
            exe_name=exe_name,
        )

    def delete_game(self, game_id: str) -> None:
        """Unregister a game and remove all of its snapshots."""
        self._config.remove_game(game_id)
        self._store.delete_namespace(game_id)

    # ── Snapshots ──

    def create_snapshot(self, game_id: str, name: str | None = None) -> Snapshot:
        game = self._config.find_game(game_id)
        return self._logged("create snapshot", self._store.create, game.id, game.save_location, name)

    def list_snapshots(self, game_id: str) -> list[Snapshot]:
        return self._store.list(game_id)

    def restore_snapshot(self, snapshot_id: str, game_id: str) -> RestoreResult:
        game = self._config.find_game(game_id)
        return self._logged("restore snapshot", self._restore.restore, snapshot_id, game)

    def delete_snapshot(self, snapshot_id: str, game_id: str) -> None:
        self._logged("delete snapshot", self._store.delete, snapshot_id, game_id)

    def rename_snapshot(self, snapshot_id: str, game_id: str, new_name: str) -> Snapshot:
        return self._logged("rename snapshot", self._store.rename, snapshot_id, game_id, new_name)

    def verify_snapshot(self, snapshot_id: str, game_id: str) -> bool:
        path = self._store.snapshot_path(game_id, snapshot_id)
        if not path.is_dir():
            raise SnapshotNotFound(snapshot_id, game_id)
        return verify(path)

    def import_snapshot(self, game_id: str, name: str, archive: bytes | str | Path) -> Snapshot:
        game = self._config.find_game(game_id)
        return self._logged("import snapshot", self._store.import_archive, game.id, archive, name)

    def export_snapshot(self, snapshot_id: str, game_id: str, dest: str | Path) -> Path:
        """Export to *dest*; a directory gets ``<snapshot name>.zip`` inside it."""
        dest = Path(dest)
        if dest.is_dir():
            snapshot = self._store.get(snapshot_id, game_id)
            dest = dest / f"{sanitize_filename(snapshot.name)}.zip"
        return self._logged("export snapshot", self._store.export_archive, snapshot_id, game_id, dest)

    # ── Process ──

    def is_process_running(self, process_name: str) -> bool:
        return self._is_running(process_name)

    @staticmethod
    def _logged(action: str, func: Any, *args: Any) -> Any:
        try:
            return func(*args)
        except CheckpointError as e:
            logger.error(f"Failed to {action}: {e}")
            raise
