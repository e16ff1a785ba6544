"""Recursion scope: stops a dispatch from re-triggering on its own output."""

from __future__ import annotations

import threading
from collections.abc import Hashable

from loguru import logger


class RecursionScope:
    """Keys handled by one top-level dispatch and every cascade it causes.

    The scope travels with the events it produces. Each handler brackets its
    work with enter()/exit() (or ``with scope:``); the key set is cleared only
    when the outermost handler exits, so a cascade that re-scans the bot's own
    message still sees the keys recorded by its trigger.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._depth = 0
        self._keys: set[Hashable] = set()

    def enter(self) -> None:
        with self._lock:
            self._depth += 1

    def add(self, key: Hashable) -> bool:
        """Record key; False if it was already recorded in this scope."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def exit(self) -> None:
        with self._lock:
            if self._depth == 0:
                logger.warning("RecursionScope.exit() without matching enter()")
                return
            self._depth -= 1
            if self._depth == 0:
                self._keys.clear()

    @property
    def depth(self) -> int:
        return self._depth

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._keys

    def __enter__(self) -> RecursionScope:
        self.enter()
        return self

    def __exit__(self, *exc: object) -> None:
        self.exit()

    def __repr__(self) -> str:
        return f"<RecursionScope depth={self._depth} keys={len(self._keys)}>"
