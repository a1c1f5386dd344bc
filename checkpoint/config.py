"""Application configuration — JSON-based game registry and backup location."""

from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from checkpoint.core.errors import GameNotFound, IoError
from checkpoint.models.game import Game

_instance: "Config | None" = None

# Default config directory
_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "checkpoint"


def get_config() -> Config:
    """Module-level factory — single global Config instance."""
    global _instance
    if _instance is None:
        _instance = Config()
    return _instance


def reset_config() -> None:
    """Reset the global config instance (for testing)."""
    global _instance
    _instance = None


class Config:
    """JSON-based application configuration with file locking."""

    _DEFAULTS: dict[str, Any] = {
        "backup_location": str(Path.home() / "checkpoint"),
        "games": [],
    }

    def __init__(self, config_dir: Path | None = None) -> None:
        self._data: dict[str, Any] = {}
        self._dir = config_dir or _DEFAULT_CONFIG_DIR
        self._path = self._dir / "config.json"
        self._lock = threading.Lock()
        self._defer_save = False
        self._load()

    def _load(self) -> None:
        """Load config from disk, merging with defaults."""
        self._data = json.loads(json.dumps(self._DEFAULTS))  # deep copy defaults
        if not self._path.exists():
            self._save()
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                user_data = json.load(f)
            self._deep_merge(self._data, user_data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._set_aside_corrupt_file(e)
        except OSError as e:
            logger.warning(f"Failed to load config, using defaults: {e}")

    def _set_aside_corrupt_file(self, error: ValueError) -> None:
        """Keep an unparseable config as ``config.json.bak`` so the next save cannot lose it."""
        bak_path = self._path.with_name(self._path.name + ".bak")
        try:
            self._path.replace(bak_path)
        except OSError as e:
            raise IoError("set aside unreadable config", self._path, e) from e
        logger.warning(f"Config file is unreadable ({error}), moved to {bak_path}, using defaults")

    def _deep_merge(self, base: dict, override: dict) -> None:
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save(self) -> None:
        """Persist config to disk with file locking."""
        if self._defer_save:
            return
        with self._lock:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, ensure_ascii=False, indent=2)
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Failed to save config: {e}")
                if tmp_path.exists():
                    tmp_path.unlink(missing_ok=True)
                raise IoError("save config", self._path, e) from e

    @contextmanager
    def batch_update(self) -> Iterator[None]:
        """Context manager for batching multiple config changes into a single write."""
        self._defer_save = True
        try:
            yield
        finally:
            self._defer_save = False
            self._save()

    # ── Generic access ──

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    # ── Typed properties ──

    @property
    def config_dir(self) -> Path:
        return self._dir

    @property
    def log_dir(self) -> Path:
        return self._dir / "logs"

    @property
    def backup_location(self) -> Path:
        raw = self._data.get("backup_location") or self._DEFAULTS["backup_location"]
        return Path(raw)

    @backup_location.setter
    def backup_location(self, value: str | Path) -> None:
        root = Path(value)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create backup location {root}: {e}")
        self.set("backup_location", str(root))

    @property
    def games(self) -> list[Game]:
        return [Game.from_dict(g) for g in self._data.get("games", [])]

    # ── Game registry ──

    def find_game(self, game_id: str) -> Game:
        for game in self.games:
            if game.id == game_id:
                return game
        raise GameNotFound(game_id)

    def add_game(self, game: Game) -> Game:
        self._data.setdefault("games", []).append(game.to_dict())
        self._save()
        logger.info(f"Added game '{game.name}' ({game.id})")
        return game

    def update_game(self, game_id: str, **changes: Any) -> Game:
        """Apply non-None field changes to a registered game."""
        games = self._data.get("games", [])
        for index, raw in enumerate(games):
            if raw.get("id") != game_id:
                continue
            game = Game.from_dict(raw)
            for field_name, value in changes.items():
                if value is not None and field_name != "id":
                    setattr(game, field_name, value)
            games[index] = game.to_dict()
            self._save()
            return game
        raise GameNotFound(game_id)

    def remove_game(self, game_id: str) -> Game:
        game = self.find_game(game_id)
        self._data["games"] = [g for g in self._data.get("games", []) if g.get("id") != game_id]
        self._save()
        logger.info(f"Removed game '{game.name}' ({game_id})")
        return game
