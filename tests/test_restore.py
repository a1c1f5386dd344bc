"""Tests for the RestoreManager."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from checkpoint.core.errors import IoError, LocationOverlap, SnapshotNotFound
from checkpoint.core.metadata import SIDECAR_NAME, read_sidecar
from checkpoint.core.restore import AUTO_BACKUP_PREFIX, RestoreManager
from checkpoint.core.snapshot_store import SnapshotStore
from checkpoint.models.game import Game
from checkpoint.models.snapshot import RestoreOutcome


def _tree_bytes(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def not_running() -> MagicMock:
    return MagicMock(return_value=False)


@pytest.fixture
def manager(store: SnapshotStore, not_running: MagicMock, clock) -> RestoreManager:
    return RestoreManager(store, process_checker=not_running, clock=clock)


@pytest.fixture
def snapshot_b(store: SnapshotStore, game: Game, make_tree):
    """A snapshot whose save.dat holds content B."""
    source = make_tree("other_saves", {"save.dat": b"content B", "extra/new.sav": b"new"})
    return store.create(game.id, source, "B")


class TestRestoreSafetyNet:
    def test_live_gets_snapshot_content(self, manager: RestoreManager, game: Game, snapshot_b) -> None:
        result = manager.restore(snapshot_b.id, game)
        assert result.outcome is RestoreOutcome.SUCCEEDED
        assert result.success
        assert _tree_bytes(game.save_path) == {"save.dat": b"content B", "extra/new.sav": b"new"}

    def test_old_files_removed(self, manager: RestoreManager, game: Game, snapshot_b) -> None:
        manager.restore(snapshot_b.id, game)
        assert not (game.save_path / "slots").exists()

    def test_sidecar_not_copied_in(self, manager: RestoreManager, game: Game, snapshot_b) -> None:
        manager.restore(snapshot_b.id, game)
        assert not (game.save_path / SIDECAR_NAME).exists()

    def test_auto_backup_holds_previous_state(
        self, manager: RestoreManager, store: SnapshotStore, game: Game, snapshot_b
    ) -> None:
        result = manager.restore(snapshot_b.id, game)
        assert result.backed_up_current is True
        assert result.backup_snapshot_id

        backup = store.get(result.backup_snapshot_id, game.id)
        assert backup.name.startswith(AUTO_BACKUP_PREFIX)
        assert (backup.path / "save.dat").read_bytes() == b"content A"
        assert (backup.path / "slots" / "slot1.sav").read_bytes() == b"slot one"

    def test_auto_backup_listed_like_user_snapshot(
        self, manager: RestoreManager, store: SnapshotStore, game: Game, snapshot_b
    ) -> None:
        result = manager.restore(snapshot_b.id, game)
        ids = [s.id for s in store.list(game.id)]
        assert ids[0] == result.backup_snapshot_id
        assert snapshot_b.id in ids

    def test_missing_live_directory_is_created(
        self, manager: RestoreManager, game: Game, snapshot_b, tmp_path: Path
    ) -> None:
        game.save_location = str(tmp_path / "fresh" / "saves")
        result = manager.restore(snapshot_b.id, game)
        assert result.success
        assert result.backed_up_current is False
        assert result.backup_snapshot_id is None
        assert (game.save_path / "save.dat").read_bytes() == b"content B"


class TestRestoreRejections:
    def test_blocked_while_running(self, store: SnapshotStore, game: Game, snapshot_b) -> None:
        checker = MagicMock(return_value=True)
        manager = RestoreManager(store, process_checker=checker)
        before = _tree_bytes(game.save_path)
        snapshots_before = len(store.list(game.id))

        result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.REJECTED_RUNNING
        assert "TestGame.exe" in result.message
        assert _tree_bytes(game.save_path) == before
        assert len(store.list(game.id)) == snapshots_before
        checker.assert_called_once_with("TestGame.exe")

    def test_no_exe_name_skips_check(
        self, manager: RestoreManager, not_running: MagicMock, game: Game, snapshot_b
    ) -> None:
        game.exe_name = None
        assert manager.restore(snapshot_b.id, game).success
        not_running.assert_not_called()

    def test_game_started_after_backup(self, store: SnapshotStore, game: Game, snapshot_b) -> None:
        checker = MagicMock(side_effect=[False, True])
        manager = RestoreManager(store, process_checker=checker)
        before = _tree_bytes(game.save_path)

        result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.REJECTED_RUNNING
        assert result.backed_up_current is True
        assert _tree_bytes(game.save_path) == before

    def test_missing_snapshot_raises(self, manager: RestoreManager, game: Game) -> None:
        with pytest.raises(SnapshotNotFound):
            manager.restore("missing", game)

    def test_corrupt_snapshot_rejected(self, manager: RestoreManager, game: Game, snapshot_b) -> None:
        (snapshot_b.path / "tampered.sav").write_bytes(b"!")
        before = _tree_bytes(game.save_path)

        result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.REJECTED_CORRUPT
        assert result.backed_up_current is False
        assert _tree_bytes(game.save_path) == before

    def test_unreadable_metadata_rejected(self, manager: RestoreManager, game: Game, snapshot_b) -> None:
        (snapshot_b.path / SIDECAR_NAME).write_text("not json", encoding="utf-8")
        result = manager.restore(snapshot_b.id, game)
        assert result.outcome is RestoreOutcome.REJECTED_CORRUPT

    def test_missing_sidecar_rejected(self, manager: RestoreManager, game: Game, snapshot_b) -> None:
        (snapshot_b.path / SIDECAR_NAME).unlink()
        result = manager.restore(snapshot_b.id, game)
        assert result.outcome is RestoreOutcome.REJECTED_CORRUPT


class TestRestoreFailures:
    def test_copy_in_failure_keeps_backup(
        self, manager: RestoreManager, store: SnapshotStore, game: Game, snapshot_b
    ) -> None:
        with patch("checkpoint.core.restore.copy_tree", side_effect=IoError("copy save.dat")):
            result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.FAILED
        assert isinstance(result.error, IoError)
        assert result.backed_up_current is True
        assert result.backup_snapshot_id in result.message

        backup = store.get(result.backup_snapshot_id, game.id)
        assert (backup.path / "save.dat").read_bytes() == b"content A"

    def test_backup_failure_leaves_live_untouched(
        self, manager: RestoreManager, game: Game, snapshot_b
    ) -> None:
        before = _tree_bytes(game.save_path)
        with patch("checkpoint.core.snapshot_store.copy_tree", side_effect=IoError("copy save.dat")):
            result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.FAILED
        assert result.backed_up_current is False
        assert _tree_bytes(game.save_path) == before

    def test_unverifiable_backup_stops_before_clear(
        self, manager: RestoreManager, game: Game, snapshot_b
    ) -> None:
        before = _tree_bytes(game.save_path)
        with patch("checkpoint.core.restore.verify", side_effect=[True, False]):
            result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.FAILED
        assert result.backed_up_current is True
        assert _tree_bytes(game.save_path) == before

    def test_clear_failure_keeps_backup(
        self, manager: RestoreManager, store: SnapshotStore, game: Game, snapshot_b
    ) -> None:
        with patch.object(RestoreManager, "_clear_directory", side_effect=IoError("remove save.dat")):
            result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.FAILED
        assert isinstance(result.error, IoError)
        assert result.backed_up_current is True
        assert result.backup_snapshot_id in result.message

        backup = store.get(result.backup_snapshot_id, game.id)
        assert _tree_bytes(backup.path) == {"save.dat": b"content A", "slots/slot1.sav": b"slot one"}


class TestRestoreGuards:
    def test_save_location_containing_backup_root(
        self, manager: RestoreManager, store: SnapshotStore, game: Game, snapshot_b, tmp_path: Path
    ) -> None:
        game.save_location = str(tmp_path)
        with pytest.raises(LocationOverlap):
            manager.restore(snapshot_b.id, game)

        assert [s.id for s in store.list(game.id)] == [snapshot_b.id]
        assert (tmp_path / "live_saves" / "save.dat").read_bytes() == b"content A"

    def test_backup_root_inside_save_location(
        self, manager: RestoreManager, game: Game, tmp_config
    ) -> None:
        tmp_config.backup_location = game.save_path / "backups"
        before = _tree_bytes(game.save_path)
        with pytest.raises(LocationOverlap):
            manager.restore("any-snapshot", game)
        assert _tree_bytes(game.save_path) == before

    def test_reserved_file_in_live_saves_blocks_restore(
        self, manager: RestoreManager, store: SnapshotStore, game: Game, snapshot_b
    ) -> None:
        (game.save_path / SIDECAR_NAME).write_bytes(b"user data")
        before = _tree_bytes(game.save_path)

        result = manager.restore(snapshot_b.id, game)

        assert result.outcome is RestoreOutcome.FAILED
        assert result.backed_up_current is False
        assert SIDECAR_NAME in result.message
        assert _tree_bytes(game.save_path) == before
        assert [s.id for s in store.list(game.id)] == [snapshot_b.id]

def test_backup_sidecar_is_valid(manager: RestoreManager, game: Game, snapshot_b) -> None:
    result = manager.restore(snapshot_b.id, game)
    backup_dir = snapshot_b.path.parent / result.backup_snapshot_id
    meta = read_sidecar(backup_dir)
    assert meta is not None
    assert meta.file_count == 2
