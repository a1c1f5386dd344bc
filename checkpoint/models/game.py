"""Game registry models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4


@dataclass
class Game:
    """A registered game whose save directory can be snapshotted."""

    id: str
    name: str
    save_location: str
    exe_name: str | None = None
    cover_image: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @classmethod
    def new(
        cls,
        name: str,
        save_location: str | Path,
        exe_name: str | None = None,
        cover_image: str | None = None,
    ) -> Game:
        return cls(
            id=str(uuid4()),
            name=name,
            save_location=str(save_location),
            exe_name=exe_name or None,
            cover_image=cover_image,
        )

    @property
    def save_path(self) -> Path:
        return Path(self.save_location)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "save_location": self.save_location,
            "exe_name": self.exe_name,
            "cover_image": self.cover_image,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Game:
        raw_created = data.get("created_at")
        created_at = datetime.now(tz=timezone.utc)
        if raw_created:
            try:
                created_at = datetime.fromisoformat(str(raw_created).replace("Z", "+00:00"))
            except ValueError:
                pass
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            save_location=data.get("save_location", ""),
            exe_name=data.get("exe_name") or None,
            cover_image=data.get("cover_image"),
            created_at=created_at,
        )
