"""Recursive byte-for-byte copy with size accounting."""

from __future__ import annotations

import os
import shutil
from collections.abc import Collection, Iterator
from pathlib import Path

from loguru import logger

from checkpoint.core.errors import IoError


def _raise_walk_error(error: OSError) -> None:
    raise IoError("read directory", error.filename, error) from error


def iter_regular_files(root: Path, exclude: Collection[str] = ()) -> Iterator[tuple[Path, str]]:
    """
    Yield ``(absolute_path, relative_posix_path)`` for every regular file under *root*.

    Symlinks (to files or directories) and special files are skipped.
    Traversal order is sorted so results are stable across runs.
    """
    skipped = set(exclude)
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        current = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if not (current / d).is_symlink())
        for filename in sorted(filenames):
            path = current / filename
            if path.is_symlink() or not path.is_file():
                continue
            relative = path.relative_to(root).as_posix()
            if relative in skipped:
                continue
            yield path, relative


def copy_tree(
    source_dir: Path,
    dest_dir: Path,
    exclude: Collection[str] = (),
) -> tuple[int, int]:
    """
    Copy every regular file of *source_dir* into *dest_dir*.

    Returns ``(total_bytes, file_count)`` measured on the destination.
    Raises IoError on the first failure; the partially written
    destination is left for the caller to clean up.
    """
    source_dir = Path(source_dir)
    dest_dir = Path(dest_dir)
    total_bytes = 0
    file_count = 0

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError("create directory", dest_dir, e) from e

    for source, relative in iter_regular_files(source_dir, exclude):
        target = dest_dir / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
            total_bytes += target.stat().st_size
        except OSError as e:
            raise IoError(f"copy {relative}", source, e) from e
        file_count += 1

    logger.debug(f"Copied {file_count} files ({total_bytes} bytes) {source_dir} -> {dest_dir}")
    return total_bytes, file_count
