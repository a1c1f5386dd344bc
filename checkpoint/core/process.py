"""Check whether a game executable is currently running."""

from __future__ import annotations

from collections.abc import Callable

import psutil
from loguru import logger

ProcessChecker = Callable[[str], bool]

_EXE_SUFFIX = ".exe"


def _candidate_names(process_name: str) -> set[str]:
    """Lower-cased names that count as a match for *process_name*."""
    target = process_name.strip().lower()
    if not target:
        return set()
    if target.endswith(_EXE_SUFFIX):
        return {target, target[: -len(_EXE_SUFFIX)]}
    return {target, target + _EXE_SUFFIX}


def is_process_running(process_name: str) -> bool:
    """
    Case-insensitive lookup of a running process by executable name.

    ``Game.exe`` also matches a process reported as ``Game`` (and the other
    way round), since process names drop the suffix on some platforms.
    """
    candidates = _candidate_names(process_name)
    if not candidates:
        return False

    for proc in psutil.process_iter(["name"]):
        try:
            name = proc.info.get("name") or proc.name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if name and name.lower() in candidates:
            logger.debug(f"Process {name} (pid {proc.pid}) matches {process_name}")
            return True
    return False
