"""IRC adapter: owns the pydle client and its connect loop."""

from __future__ import annotations

import asyncio
import contextlib

from loguru import logger

from trackbot.adapters.base import AdapterBase
from trackbot.adapters.irc.client import IRCClient, _connect_with_backoff
from trackbot.config import cfg
from trackbot.events import MessageOut
from trackbot.gateway import Bus


class IRCAdapter(AdapterBase):
    """Delivers MessageOut to IRC and feeds IRC lines to the bus."""

    def __init__(self, bus: Bus) -> None:
        self._bus = bus
        self._client: IRCClient | None = None
        self._task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return "irc"

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, MessageOut) and evt.target_origin == "irc"

    def push_event(self, source: str, evt: object) -> None:
        if not isinstance(evt, MessageOut):
            return
        if not evt.targets:
            return
        if self._client is None:
            logger.warning("IRC MessageOut dropped: no client (targets={})", evt.targets)
            return
        self._client.queue_message(evt)

    async def start(self) -> None:
        """Create the client and start connecting in the background."""
        channels = cfg.irc_channels
        if not channels:
            logger.warning("No irc_channels configured; the bot will only answer private messages")

        self._client = IRCClient(
            bus=self._bus,
            server=cfg.irc_server,
            nick=cfg.irc_nick,
            channels=channels,
            throttle_limit=cfg.irc_throttle_limit,
            rejoin_delay=cfg.irc_rejoin_delay,
            auto_rejoin=cfg.irc_auto_rejoin,
            admin_masks=cfg.irc_admin_masks,
        )
        self._bus.register(self)
        self._task = asyncio.create_task(
            _connect_with_backoff(
                self._client,
                hostname=cfg.irc_server,
                port=cfg.irc_port,
                tls=cfg.irc_tls,
                tls_verify=cfg.irc_tls_verify,
            )
        )
        logger.info(
            "IRC connection started: {}:{} as {}, channels {}", cfg.irc_server, cfg.irc_port, cfg.irc_nick, channels
        )

    async def stop(self) -> None:
        self._bus.unregister(self)
        if self._client:
            await self._client.disconnect()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._client = None
        self._task = None
