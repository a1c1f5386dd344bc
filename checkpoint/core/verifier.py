"""Compare a snapshot tree against its sidecar totals."""

from __future__ import annotations

from collections.abc import Collection
from pathlib import Path

from loguru import logger

from checkpoint.core.copier import iter_regular_files
from checkpoint.core.errors import IoError
from checkpoint.core.metadata import SIDECAR_NAME, read_sidecar


def measure(root: Path, exclude: Collection[str] = ()) -> tuple[int, int]:
    """Return ``(total_bytes, file_count)`` over the regular files under *root*."""
    total = 0
    count = 0
    for path, _relative in iter_regular_files(root, exclude):
        try:
            total += path.stat().st_size
        except OSError as e:
            raise IoError("read file size", path, e) from e
        count += 1
    return total, count


def verify(snapshot_path: Path) -> bool:
    """
    Check that a snapshot still holds what its sidecar recorded.

    This is a size + file-count check, not a content digest. A missing
    sidecar yields False; a malformed one raises CorruptMetadata.
    """
    snapshot_path = Path(snapshot_path)
    meta = read_sidecar(snapshot_path)
    if meta is None:
        logger.debug(f"No sidecar in {snapshot_path}, verification failed")
        return False

    actual_size, actual_count = measure(snapshot_path, exclude=(SIDECAR_NAME,))
    ok = actual_size == meta.size and actual_count == meta.file_count
    if not ok:
        logger.warning(
            f"Snapshot {meta.id} drifted: recorded {meta.file_count} files / {meta.size} bytes, "
            f"found {actual_count} files / {actual_size} bytes"
        )
    return ok
