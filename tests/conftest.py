"""Shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest

from checkpoint.core.snapshot_store import SnapshotStore
from checkpoint.models.game import Game


class FakeClock:
    """Deterministic clock: each call is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tmp_config(tmp_path: Path):
    """Create a mock Config pointing to a temp directory."""
    config = MagicMock()
    config.backup_location = tmp_path / "backups"
    return config


@pytest.fixture
def store(tmp_config, clock: FakeClock) -> SnapshotStore:
    return SnapshotStore(tmp_config, clock=clock)


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[str, dict[str, bytes]], Path]:
    """Build a directory from a ``{relative_path: content}`` mapping."""

    def _make(name: str, files: dict[str, bytes]) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        return root

    return _make


@pytest.fixture
def game(make_tree) -> Game:
    save_dir = make_tree("live_saves", {"save.dat": b"content A", "slots/slot1.sav": b"slot one"})
    return Game(id="game-1", name="Test Game", save_location=str(save_dir), exe_name="TestGame.exe")
