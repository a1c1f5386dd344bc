"""Snapshot store — full-copy snapshot directories with sidecar JSON metadata."""

from __future__ import annotations

import io
import shutil
import tempfile
import zipfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, BinaryIO
from uuid import uuid4

from loguru import logger

from checkpoint.core.copier import copy_tree, iter_regular_files
from checkpoint.core.errors import (
    IoError,
    LocationOverlap,
    SnapshotMetadataNotFound,
    SnapshotNotFound,
    SourceNotFound,
)
from checkpoint.core.metadata import SIDECAR_NAME, read_sidecar, write_sidecar
from checkpoint.models.snapshot import Snapshot, SnapshotMetadata

if TYPE_CHECKING:
    from checkpoint.config import Config

Clock = Callable[[], datetime]

DEFAULT_NAME_FORMAT = "%Y-%m-%d_%H-%M-%S"


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _check_component(value: str, kind: str) -> str:
    """Reject ids that would escape the backup root when joined as a path."""
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"Invalid {kind}: {value!r}")
    return value


class SnapshotStore:
    """
    Owns the on-disk layout ``<backup_root>/<game_id>/<snapshot_id>/``.

    Each snapshot directory holds a full copy of the save tree plus one
    ``.checkpoint-meta.json`` sidecar. The backup root is read from the
    config on every call so a changed location takes effect immediately.
    """

    def __init__(self, config: Config, clock: Clock | None = None) -> None:
        self._config = config
        self._clock = clock or utc_now

    # ── Layout ──

    @property
    def backup_root(self) -> Path:
        return Path(self._config.backup_location)

    def game_dir(self, game_id: str) -> Path:
        return self.backup_root / _check_component(game_id, "game id")

    def snapshot_path(self, game_id: str, snapshot_id: str) -> Path:
        return self.game_dir(game_id) / _check_component(snapshot_id, "snapshot id")

    def _allocate(self, game_id: str) -> tuple[str, Path]:
        game_dir = self.game_dir(game_id)
        while True:
            snapshot_id = str(uuid4())
            path = game_dir / snapshot_id
            try:
                path.mkdir(parents=True, exist_ok=False)
            except FileExistsError:
                continue
            except OSError as e:
                raise IoError("create snapshot directory", path, e) from e
            return snapshot_id, path

    def check_separate(self, save_location: str | Path) -> None:
        """Raise LocationOverlap if *save_location* and the backup root nest."""
        save = Path(save_location).resolve()
        root = self.backup_root.resolve()
        if save == root or save in root.parents or root in save.parents:
            raise LocationOverlap(save_location, self.backup_root)

    # ── Create ──

    def create(
        self,
        game_id: str,
        save_location: str | Path,
        name: str | None = None,
    ) -> Snapshot:
        """Copy *save_location* into a new snapshot. The sidecar exists on return."""
        source = Path(save_location)
        if not source.exists():
            raise SourceNotFound(source)
        self.check_separate(source)

        timestamp = self._clock()
        snapshot_id, snapshot_dir = self._allocate(game_id)

        if (source / SIDECAR_NAME).is_file():
            logger.warning(f"Skipping reserved file {SIDECAR_NAME} in {source}")

        try:
            size, file_count = copy_tree(source, snapshot_dir, exclude=(SIDECAR_NAME,))
            meta = SnapshotMetadata(
                id=snapshot_id,
                game_id=game_id,
                timestamp=timestamp,
                name=timestamp.strftime(DEFAULT_NAME_FORMAT) if name is None else name,
                size=size,
                file_count=file_count,
            )
            write_sidecar(snapshot_dir, meta)
        except IoError:
            self._discard(snapshot_dir)
            raise

        logger.info(f"Created snapshot '{meta.name}' ({file_count} files, {size} bytes) for game {game_id}")
        return Snapshot.from_metadata(meta, snapshot_dir)

    def _discard(self, snapshot_dir: Path) -> None:
        """Remove a half-written snapshot after a failed create."""
        try:
            shutil.rmtree(snapshot_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove incomplete snapshot {snapshot_dir}: {e}")

    # ── Query ──

    def list(self, game_id: str) -> list[Snapshot]:
        """List a game's snapshots, newest first."""
        game_dir = self.game_dir(game_id)
        if not game_dir.is_dir():
            return []

        snapshots: list[Snapshot] = []
        try:
            entries = sorted(game_dir.iterdir())
        except OSError as e:
            raise IoError("read snapshots directory", game_dir, e) from e

        for entry in entries:
            if not entry.is_dir():
                continue
            meta = read_sidecar(entry)
            if meta is None:
                continue
            snapshots.append(Snapshot.from_metadata(meta, entry))

        snapshots.sort(key=lambda s: s.timestamp, reverse=True)
        return snapshots

    def get(self, snapshot_id: str, game_id: str) -> Snapshot:
        path = self.snapshot_path(game_id, snapshot_id)
        if not path.is_dir():
            raise SnapshotNotFound(snapshot_id, game_id)
        meta = read_sidecar(path)
        if meta is None:
            raise SnapshotMetadataNotFound(path)
        return Snapshot.from_metadata(meta, path)

    # ── Mutate ──

    def rename(self, snapshot_id: str, game_id: str, new_name: str) -> Snapshot:
        """Overwrite the sidecar ``name``; every other field is kept."""
        path = self.snapshot_path(game_id, snapshot_id)
        meta = read_sidecar(path)
        if meta is None:
            raise SnapshotMetadataNotFound(path)
        meta.name = new_name
        write_sidecar(path, meta)
        logger.info(f"Renamed snapshot {snapshot_id} to '{new_name}'")
        return Snapshot.from_metadata(meta, path)

    def delete(self, snapshot_id: str, game_id: str) -> None:
        """Remove the whole snapshot directory. Not recoverable."""
        path = self.snapshot_path(game_id, snapshot_id)
        if not path.exists():
            raise SnapshotNotFound(snapshot_id, game_id)
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise IoError("delete snapshot", path, e) from e
        logger.info(f"Deleted snapshot {snapshot_id} of game {game_id}")

    def delete_namespace(self, game_id: str) -> bool:
        """Remove every snapshot of a game. Returns False if there were none."""
        game_dir = self.game_dir(game_id)
        if not game_dir.exists():
            return False
        try:
            shutil.rmtree(game_dir)
        except OSError as e:
            raise IoError("delete game snapshots", game_dir, e) from e
        logger.info(f"Deleted snapshot namespace of game {game_id}")
        return True

    # ── Archive import / export ──

    def import_archive(
        self,
        game_id: str,
        archive: bytes | str | Path | BinaryIO,
        name: str | None = None,
    ) -> Snapshot:
        """Create a snapshot from a ZIP archive of save files."""
        source: str | Path | BinaryIO = io.BytesIO(archive) if isinstance(archive, bytes) else archive

        with tempfile.TemporaryDirectory(prefix="checkpoint_import_") as tmp_dir:
            tmp = Path(tmp_dir)
            try:
                with zipfile.ZipFile(source, "r") as zf:
                    for member in zf.infolist():
                        if member.is_dir():
                            continue
                        parts = PurePosixPath(member.filename.replace("\\", "/")).parts
                        if not parts or parts[0] == "/" or ".." in parts or ":" in parts[0]:
                            raise IoError(f"import unsafe archive member {member.filename!r}")
                        target = tmp.joinpath(*parts)
                        target.parent.mkdir(parents=True, exist_ok=True)
                        with zf.open(member) as src, open(target, "wb") as dst:
                            shutil.copyfileobj(src, dst)
            except zipfile.BadZipFile as e:
                raise IoError("read snapshot archive", None, e) from e
            except OSError as e:
                raise IoError("extract snapshot archive", tmp, e) from e

            snapshot = self.create(game_id, tmp, name)

        logger.info(f"Imported snapshot '{snapshot.name}' for game {game_id}")
        return snapshot

    def export_archive(self, snapshot_id: str, game_id: str, dest: str | Path) -> Path:
        """Write the snapshot's files (sidecar excluded) to a ZIP at *dest*."""
        snapshot = self.get(snapshot_id, game_id)
        dest = Path(dest)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(dest, "w", zipfile.ZIP_DEFLATED) as zf:
                for path, relative in iter_regular_files(snapshot.path, exclude=(SIDECAR_NAME,)):
                    zf.write(path, relative)
        except IoError:
            dest.unlink(missing_ok=True)
            raise
        except OSError as e:
            dest.unlink(missing_ok=True)
            raise IoError("write snapshot archive", dest, e) from e

        logger.info(f"Exported snapshot '{snapshot.name}' to {dest}")
        return dest
