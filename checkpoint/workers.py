"""Background workers — run blocking engine calls off the UI thread."""

from __future__ import annotations

import threading
from typing import Any, Callable

from loguru import logger
from PySide6.QtCore import QObject, QThread, Signal

from checkpoint.core.errors import OperationInProgress


class OperationWorker(QThread):
    """Runs one engine call in a background thread and reports the outcome."""

    succeeded = Signal(object)  # return value of the call
    failed = Signal(str)

    def __init__(
        self,
        game_id: str,
        func: Callable[..., Any],
        *args: Any,
        parent: QObject | None = None,
        on_done: Callable[[OperationWorker], None] | None = None,
    ) -> None:
        super().__init__(parent)
        self.game_id = game_id
        self._on_done = on_done
        self._func = func
        self._args = args
        self.result: Any = None
        self.error: Exception | None = None

    def run(self) -> None:
        try:
            self.result = self._func(*self._args)
        except Exception as e:
            # Reported through the failed signal, the UI decides how to show it
            logger.exception(f"Background operation failed for game {self.game_id}")
            self.error = e
        finally:
            if self._on_done is not None:
                self._on_done(self)

        if self.error is not None:
            self.failed.emit(str(self.error))
        else:
            self.succeeded.emit(self.result)


class GameTaskRunner(QObject):
    """
    Starts workers while keeping at most one in flight per game.

    Snapshot namespaces have no internal locking, so create / restore /
    rename / delete for the same game must not overlap.
    """

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._lock = threading.Lock()
        self._active: dict[str, OperationWorker] = {}

    def is_busy(self, game_id: str) -> bool:
        with self._lock:
            return game_id in self._active

    def submit(
        self,
        game_id: str,
        func: Callable[..., Any],
        *args: Any,
        start: bool = True,
    ) -> OperationWorker:
        """Create (and by default start) a worker. Raises OperationInProgress if the game is busy."""
        with self._lock:
            if game_id in self._active:
                raise OperationInProgress(game_id)
            worker = OperationWorker(game_id, func, *args, parent=self, on_done=self._release)
            self._active[game_id] = worker

        if start:
            worker.start()
        return worker

    def _release(self, worker: OperationWorker) -> None:
        with self._lock:
            if self._active.get(worker.game_id) is worker:
                del self._active[worker.game_id]
