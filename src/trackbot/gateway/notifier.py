"""Notification dispatcher: tracker references in chat lines -> one summary per target."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from itertools import islice

import httpx
from cachetools import TTLCache
from loguru import logger

from trackbot.config import TrackerSettings, cfg
from trackbot.core.errors import TrackerLookupError
from trackbot.dedupe import DedupeCache, Fingerprint, RecursionScope
from trackbot.events import ConfigReload, ExternalNotice, MessageIn, MessageOut, message_out
from trackbot.formatting.irc_format import strip_formatting
from trackbot.gateway.bus import Bus
from trackbot.gateway.router import TargetResolver
from trackbot.trackers.base import LookupResult, TrackerBase

_LOOKUP_CACHE_SIZE = 256


class Outcome(str, Enum):
    DUPLICATE = "duplicate"  # already handled by this dispatch or its cascade
    SUPPRESSED = "suppressed"  # posted to every target within the window
    FAILED = "failed"  # lookup failed; nothing posted, nothing cached
    DELIVERED = "delivered"


@dataclass(frozen=True)
class Delivery:
    """What happened to one extracted reference."""

    fingerprint: Fingerprint
    outcome: Outcome
    targets: tuple[str, ...] = ()
    message: str | None = None


class NotificationDispatcher:
    """Bus target for one tracker.

    For every reference found in an inbound line (or in the bot's own outbound
    lines) the order is: recursion scope, per-target dedupe claim, lookup,
    then a single multi-target MessageOut carrying the same scope. The lookup
    runs without any lock held. A failed lookup releases its claims so the
    next mention retries.
    """

    def __init__(
        self,
        bus: Bus,
        tracker: TrackerBase,
        resolver: TargetResolver,
        settings: TrackerSettings,
        *,
        cache: DedupeCache | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._bus = bus
        self._tracker = tracker
        self._resolver = resolver
        self._clock = clock
        self._settings = settings
        if cache is None:
            cache = DedupeCache(
                settings.dupe_window_seconds,
                expire_after=max(settings.dupe_window_seconds, settings.notice_window_seconds),
                clock=clock,
            )
        self._cache = cache
        self._lookup_lock = threading.Lock()
        self._lookups = self._new_lookup_cache(settings)
        self._tasks: set[asyncio.Task] = set()
        tracker.configure(settings)

    @property
    def name(self) -> str:
        return self._tracker.name

    @property
    def settings(self) -> TrackerSettings:
        return self._settings

    @property
    def cache(self) -> DedupeCache:
        return self._cache

    def _new_lookup_cache(self, settings: TrackerSettings) -> TTLCache[Fingerprint, LookupResult] | None:
        if settings.lookup_cache_seconds <= 0:
            return None
        return TTLCache(maxsize=_LOOKUP_CACHE_SIZE, ttl=settings.lookup_cache_seconds, timer=self._clock)

    def configure(self, settings: TrackerSettings) -> None:
        """Swap in a new settings snapshot. In-flight dispatches keep the one they started with."""
        if settings.lookup_cache_seconds != self._settings.lookup_cache_seconds:
            with self._lookup_lock:
                self._lookups = self._new_lookup_cache(settings)
        self._settings = settings
        self._tracker.configure(settings)
        logger.debug(
            "{}: window={}s notice_window={}s max_matches={}",
            self.name,
            settings.dupe_window_seconds,
            settings.notice_window_seconds,
            settings.max_matches,
        )

    # Bus target

    def accept_event(self, source: str, evt: object) -> bool:
        if isinstance(evt, ConfigReload):
            return True
        if isinstance(evt, MessageIn):
            return evt.origin == "irc"
        if isinstance(evt, MessageOut):
            return evt.target_origin == "irc" and self._settings.rescan_outbound
        if isinstance(evt, ExternalNotice):
            return evt.tracker == self.name
        return False

    def push_event(self, source: str, evt: object) -> None:
        if isinstance(evt, ConfigReload):
            self.configure(cfg.tracker(self.name))
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("{}: no running event loop; dropped {}", self.name, type(evt).__name__)
            return
        scope: RecursionScope = evt.scope  # type: ignore[attr-defined]
        # Entered before the task is scheduled so the trigger exiting cannot clear the scope first
        scope.enter()
        task = loop.create_task(self._handle_scoped(evt, scope))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_scoped(self, evt: object, scope: RecursionScope) -> None:
        try:
            if isinstance(evt, ExternalNotice):
                await self.on_external_notice(evt.key, scope)
            else:
                await self.handle_inbound(evt, scope)
        except Exception:
            logger.exception("{}: failed to handle {}", self.name, type(evt).__name__)
        finally:
            scope.exit()

    @property
    def pending(self) -> int:
        """Scheduled dispatches not yet finished."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled dispatch, including cascades they schedule."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def purge_forever(self, interval: float = 60.0) -> None:
        """Sweep expired dedupe entries of idle targets."""
        while True:
            await asyncio.sleep(interval)
            self._cache.purge()

    # Entry points

    async def handle_inbound(self, evt: MessageIn | MessageOut, scope: RecursionScope | None = None) -> list[Delivery]:
        """Answer the references in one chat line. Returns one Delivery per processed match."""
        settings = self._settings
        if scope is None:
            scope = evt.scope
        text = strip_formatting(evt.content)
        targets = self._resolver.reply_targets(evt)
        deliveries: list[Delivery] = []
        with scope:
            for fp in islice(self._tracker.extract(text, settings), settings.max_matches):
                delivery = await self._dispatch(fp, targets, scope, window=settings.dupe_window_seconds)
                deliveries.append(delivery)
        return deliveries

    async def on_external_notice(self, key: str, scope: RecursionScope | None = None) -> Delivery | None:
        """Proactive notice for one key to its project's channels. None if the key is unusable."""
        settings = self._settings
        fp = self._tracker.fingerprint_for_key(key, settings)
        if fp is None:
            logger.debug("{}: ignoring notice for {}", self.name, key)
            return None
        targets = self._resolver.project_targets(self.name, self._tracker.project_of(fp))
        if not targets:
            logger.info("{}: no channels configured for {}", self.name, key)
        if scope is None:
            scope = RecursionScope()
        with scope:
            return await self._dispatch(
                fp,
                targets,
                scope,
                window=settings.notice_window_seconds,
                banner=f"new {self._tracker.banner}",
            )

    def announce(
        self,
        targets: Iterable[str],
        message: str,
        fingerprints: Iterable[Fingerprint] = (),
        scope: RecursionScope | None = None,
    ) -> None:
        """Post a pre-formatted notice and mark its references as just posted."""
        targets = list(targets)
        if not targets:
            return
        if scope is None:
            scope = RecursionScope()
        for fp in fingerprints:
            scope.add(fp)
            for target in targets:
                self._cache.record(target, fp)
        self._send(targets, message, scope)

    # Internals

    async def _dispatch(
        self,
        fp: Fingerprint,
        targets: list[str],
        scope: RecursionScope,
        *,
        window: float,
        banner: str | None = None,
    ) -> Delivery:
        if not scope.add(fp):
            logger.debug("{}: {} already handled in this dispatch", self.name, fp)
            return Delivery(fp, Outcome.DUPLICATE)

        claims = []
        for target in targets:
            entry = self._cache.claim(target, fp, window=window)
            if entry is not None:
                claims.append((target, entry))
        if not claims:
            logger.debug("{}: {} suppressed for {}", self.name, fp, targets)
            return Delivery(fp, Outcome.SUPPRESSED)

        send_to = tuple(target for target, _ in claims)
        result = await self._lookup(fp)
        if result is None:
            for target, entry in claims:
                self._cache.release(target, entry)
            return Delivery(fp, Outcome.FAILED, send_to)

        message = self._tracker.format(fp, result, banner=banner)
        self._send(list(send_to), message, scope)
        return Delivery(fp, Outcome.DELIVERED, send_to, message)

    async def _lookup(self, fp: Fingerprint) -> LookupResult | None:
        lookups = self._lookups
        if lookups is not None:
            with self._lookup_lock:
                cached = lookups.get(fp)
            if cached is not None:
                logger.debug("{}: lookup cache hit for {}", self.name, fp)
                return cached
        try:
            result = await self._tracker.fetch(fp)
        except httpx.HTTPError as exc:
            logger.warning("{}: lookup of {} failed: {}", self.name, fp, exc)
            return None
        except TrackerLookupError as exc:
            logger.warning("{}: unusable answer for {}: {}", self.name, fp, exc)
            return None
        except Exception:
            logger.exception("{}: lookup of {} raised", self.name, fp)
            return None
        if result is None:
            logger.info("{}: {} not found", self.name, fp)
            return None
        if lookups is not None:
            with self._lookup_lock:
                lookups[fp] = result
        return result

    def _send(self, targets: list[str], message: str, scope: RecursionScope) -> None:
        _, evt = message_out("irc", targets, message, source=self.name, scope=scope)
        logger.info("{}: notice to {}", self.name, ", ".join(targets))
        self._bus.publish(self.name, evt)
