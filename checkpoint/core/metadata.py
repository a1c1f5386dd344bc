"""JSON sidecar stored inside each snapshot directory: encode, decode, read, write."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from checkpoint.core.errors import CorruptMetadata, IoError
from checkpoint.models.snapshot import SnapshotMetadata

# Reserved name inside every snapshot tree. Save data must never use it.
SIDECAR_NAME = ".checkpoint-meta.json"

_FIELDS = ("id", "game_id", "timestamp", "name", "size", "file_count")

# Older sidecars carry nanosecond fractions, datetime only takes microseconds
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    text = _FRACTION_RE.sub(r"\1", raw.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def encode(meta: SnapshotMetadata) -> bytes:
    """Serialize *meta* to pretty-printed JSON with a fixed field order."""
    data: dict[str, Any] = {
        "id": meta.id,
        "game_id": meta.game_id,
        "timestamp": format_timestamp(meta.timestamp),
        "name": meta.name,
        "size": meta.size,
        "file_count": meta.file_count,
    }
    for key, value in meta.extras.items():
        if key not in data:
            data[key] = value
    return (json.dumps(data, ensure_ascii=False, indent=2) + "\n").encode("utf-8")


def decode(raw: bytes, path: Path | None = None) -> SnapshotMetadata:
    """Parse sidecar bytes. Raises CorruptMetadata on malformed input."""
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptMetadata(f"not valid JSON: {e}", path) from e

    if not isinstance(data, dict):
        raise CorruptMetadata("expected a JSON object", path)

    missing = [name for name in _FIELDS if name not in data]
    if missing:
        raise CorruptMetadata(f"missing field(s): {', '.join(missing)}", path)

    for name in ("id", "game_id", "timestamp", "name"):
        if not isinstance(data[name], str):
            raise CorruptMetadata(f"field '{name}' must be a string", path)
    for name in ("size", "file_count"):
        value = data[name]
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise CorruptMetadata(f"field '{name}' must be a non-negative integer", path)

    try:
        timestamp = parse_timestamp(data["timestamp"])
    except ValueError as e:
        raise CorruptMetadata(f"bad timestamp {data['timestamp']!r}", path) from e

    return SnapshotMetadata(
        id=data["id"],
        game_id=data["game_id"],
        timestamp=timestamp,
        name=data["name"],
        size=data["size"],
        file_count=data["file_count"],
        extras={k: v for k, v in data.items() if k not in _FIELDS},
    )


def sidecar_path(snapshot_dir: Path) -> Path:
    return snapshot_dir / SIDECAR_NAME


def read_sidecar(snapshot_dir: Path) -> SnapshotMetadata | None:
    """Load the sidecar of *snapshot_dir*, or None if it has none."""
    path = sidecar_path(snapshot_dir)
    if not path.is_file():
        return None
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise IoError("read metadata", path, e) from e
    return decode(raw, path)


def write_sidecar(snapshot_dir: Path, meta: SnapshotMetadata) -> Path:
    """Write the sidecar through a temp file so readers never see half a record."""
    path = sidecar_path(snapshot_dir)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        tmp_path.write_bytes(encode(meta))
        tmp_path.replace(path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise IoError("write metadata", path, e) from e
    return path
