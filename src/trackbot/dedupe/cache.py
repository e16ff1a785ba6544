"""Per-target dedupe cache with a sliding suppression window."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from cachetools import TTLCache
from loguru import logger


class DedupeEntry(NamedTuple):
    """Last time a fingerprint was posted to a target."""

    fingerprint: Hashable
    timestamp: float
    payload: Any = None


@dataclass(frozen=True)
class ExpiryPolicy:
    """When an entry stops suppressing repeats, and when it may be dropped.

    Ages are ``now - entry.timestamp``. A negative age means the clock went
    backwards or the caller passed an out-of-order ``now``; such entries are
    treated as stale and droppable so they can never suppress forever.
    """

    window: float
    expire_after: float

    def is_fresh(self, entry: DedupeEntry, now: float, window: float | None = None) -> bool:
        age = now - entry.timestamp
        if age < 0:
            return False
        return age < (self.window if window is None else window)

    def is_expired(self, entry: DedupeEntry, now: float) -> bool:
        age = now - entry.timestamp
        return age < 0 or age >= self.expire_after


@dataclass
class _TargetMap:
    """One target's entries in a TTLCache whose timer reads ``now``.

    ``now`` is set under ``lock`` before every access, so callers that pass an
    explicit time and callers that read the clock see the same expiry.
    """

    maxsize: int
    ttl: float
    lock: threading.Lock = field(default_factory=threading.Lock)
    now: float = 0.0
    entries: TTLCache[Hashable, DedupeEntry] = field(init=False)

    def __post_init__(self) -> None:
        self.entries = TTLCache(maxsize=self.maxsize, ttl=self.ttl, timer=self._time)

    def _time(self) -> float:
        return self.now

    def retime(self, ttl: float) -> None:
        """Rebuild with a longer ttl; each entry keeps its own timestamp."""
        live = sorted(self.entries.values(), key=lambda e: e.timestamp)
        now = self.now
        self.ttl = ttl
        self.entries = TTLCache(maxsize=self.maxsize, ttl=ttl, timer=self._time)
        for entry in live:
            self.now = entry.timestamp
            self.entries[entry.fingerprint] = entry
        self.now = now


class DedupeCache:
    """Map of target -> fingerprint -> last post time.

    ``check_apply`` is an atomic check-and-insert per target: of any number of
    concurrent callers for the same (target, fingerprint) with no fresh entry,
    exactly one is told to proceed. Each target has its own lock; the global
    lock is only taken to create a target's map. No lock is ever held across
    I/O.

    Each target's entries live in a ``TTLCache`` with ``ttl=expire_after`` and
    ``maxsize=max_entries``. Expiry is lazy, on every access to the target.
    Target names are compared case-insensitively, like IRC channel names.
    """

    def __init__(
        self,
        window: float = 10.0,
        *,
        expire_after: float | None = None,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window < 0:
            raise ValueError("window must be >= 0")
        self._policy = ExpiryPolicy(window=window, expire_after=max(window, expire_after or 0.0))
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._targets: dict[str, _TargetMap] = {}

    @property
    def window(self) -> float:
        return self._policy.window

    @property
    def policy(self) -> ExpiryPolicy:
        return self._policy

    def _submap(self, target: str) -> _TargetMap:
        key = target.lower()
        sub = self._targets.get(key)
        if sub is not None:
            return sub
        with self._lock:
            return self._targets.setdefault(key, _TargetMap(self._max_entries, self._policy.expire_after))

    def _widen(self, window: float | None) -> None:
        """Never evict an entry a caller's longer window still needs."""
        if window is not None and window > self._policy.expire_after:
            with self._lock:
                if window > self._policy.expire_after:
                    self._policy = ExpiryPolicy(window=self._policy.window, expire_after=window)

    def _advance(self, sub: _TargetMap, now: float | None) -> tuple[float, int]:
        """Move sub's timer to now and drop what expired. Caller holds sub.lock."""
        if now is None:
            now = self._clock()
        if sub.ttl < self._policy.expire_after:
            sub.retime(self._policy.expire_after)
        sub.now = now
        dropped = len(sub.entries.expire(now))
        # A backwards clock jump leaves entries from the future behind.
        for key in [k for k, e in sub.entries.items() if e.timestamp > now]:
            sub.entries.pop(key, None)
            dropped += 1
        return now, dropped

    def claim(
        self,
        target: str,
        fingerprint: Hashable,
        now: float | None = None,
        *,
        window: float | None = None,
        payload: Any = None,
    ) -> DedupeEntry | None:
        """Record fingerprint for target unless a fresh entry exists.

        Returns the new entry (caller may proceed and may later ``release`` it)
        or None when the fingerprint is still within its window.
        """
        self._widen(window)
        sub = self._submap(target)
        with sub.lock:
            now, _ = self._advance(sub, now)
            current = sub.entries.get(fingerprint)
            if current is not None and self._policy.is_fresh(current, now, window):
                return None
            entry = DedupeEntry(fingerprint, now, payload)
            sub.entries[fingerprint] = entry
            return entry

    def check_apply(
        self,
        target: str,
        fingerprint: Hashable,
        now: float | None = None,
        *,
        window: float | None = None,
    ) -> bool:
        """True if no fresh entry existed; the entry is then recorded with ``now``."""
        return self.claim(target, fingerprint, now, window=window) is not None

    def record(self, target: str, fingerprint: Hashable, now: float | None = None, payload: Any = None) -> DedupeEntry:
        """Insert or refresh unconditionally."""
        sub = self._submap(target)
        with sub.lock:
            now, _ = self._advance(sub, now)
            entry = DedupeEntry(fingerprint, now, payload)
            sub.entries[fingerprint] = entry
            return entry

    def release(self, target: str, entry: DedupeEntry) -> bool:
        """Undo a claim. A newer entry for the same fingerprint is left alone."""
        sub = self._targets.get(target.lower())
        if sub is None:
            return False
        with sub.lock:
            if sub.entries.get(entry.fingerprint) is entry:
                sub.entries.pop(entry.fingerprint, None)
                return True
            return False

    def is_fresh(
        self,
        target: str,
        fingerprint: Hashable,
        now: float | None = None,
        *,
        window: float | None = None,
    ) -> bool:
        sub = self._targets.get(target.lower())
        if sub is None:
            return False
        with sub.lock:
            now, _ = self._advance(sub, now)
            entry = sub.entries.get(fingerprint)
            return entry is not None and self._policy.is_fresh(entry, now, window)

    def fresh_count(self, target: str, now: float | None = None) -> int:
        """Entries of target that would still suppress a repeat."""
        sub = self._targets.get(target.lower())
        if sub is None:
            return 0
        with sub.lock:
            now, _ = self._advance(sub, now)
            return sum(1 for e in sub.entries.values() if self._policy.is_fresh(e, now))

    def purge(self, now: float | None = None) -> int:
        """Evict across every target; returns the number of entries dropped."""
        with self._lock:
            subs = list(self._targets.values())
        dropped = 0
        for sub in subs:
            with sub.lock:
                dropped += self._advance(sub, now)[1]
        if dropped:
            logger.debug("Dedupe cache purge dropped {} entries", dropped)
        return dropped

    def targets(self) -> list[str]:
        with self._lock:
            return list(self._targets)

    def __len__(self) -> int:
        with self._lock:
            subs = list(self._targets.values())
        total = 0
        for sub in subs:
            with sub.lock:
                total += len(sub.entries)
        return total
