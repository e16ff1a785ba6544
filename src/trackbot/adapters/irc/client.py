"""pydle IRC client: publishes chat lines and sends queued notices."""

from __future__ import annotations

import asyncio
import contextlib
import random

import pydle
from loguru import logger

from trackbot.adapters.irc.admin import LEAVE_REPLY, AdminCommand, AdminCommands
from trackbot.adapters.irc.throttle import TokenBucket
from trackbot.events import MessageOut, message_in
from trackbot.formatting.irc_message_split import split_irc_message
from trackbot.gateway import Bus

# Backoff: min 2s, max 60s, jitter
_BACKOFF_MIN = 2
_BACKOFF_MAX = 60
_MAX_ATTEMPTS = 10


async def _connect_with_backoff(
    client: pydle.Client,
    hostname: str,
    port: int,
    tls: bool,
    tls_verify: bool = True,
) -> None:
    """Connect with exponential backoff and jitter on failure; reconnect on disconnect."""
    attempt = 0
    while True:
        try:
            await client.connect(hostname=hostname, port=port, tls=tls, tls_verify=tls_verify)
            # connect() returns once the read loop is spawned; wait for the disconnect.
            while client.connected:
                await asyncio.sleep(0.5)
            attempt = 0
            wait = _BACKOFF_MIN * random.uniform(0.5, 1.5)
            logger.info("IRC disconnected, reconnecting in {:.1f}s", wait)
            await asyncio.sleep(wait)
        except Exception as exc:
            attempt += 1
            if attempt >= _MAX_ATTEMPTS:
                logger.exception("IRC connect failed after {} attempts", _MAX_ATTEMPTS)
                raise
            delay = min(_BACKOFF_MAX, _BACKOFF_MIN * (2 ** (attempt - 1)))
            wait = delay * random.uniform(0.5, 1.5)
            logger.warning("IRC connect failed (attempt {}): {}, retrying in {:.1f}s", attempt, exc, wait)
            await asyncio.sleep(wait)


class IRCClient(pydle.Client):
    """Bot connection. Every inbound line becomes a MessageIn with a fresh recursion scope."""

    def __init__(
        self,
        bus: Bus,
        server: str,
        nick: str,
        channels: list[str],
        *,
        throttle_limit: int = 5,
        rejoin_delay: float = 5,
        auto_rejoin: bool = True,
        max_line_bytes: int = 450,
        admin_masks: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(nick, **kwargs)
        self._bus = bus
        self._server = server
        self._channels = channels
        self._outbound: asyncio.Queue[MessageOut] = asyncio.Queue()
        self._consumer_task: asyncio.Task | None = None
        self._throttle = TokenBucket(limit=throttle_limit, refill_rate=1.0)
        self._rejoin_delay = rejoin_delay
        self._auto_rejoin = auto_rejoin
        self._max_line_bytes = max_line_bytes
        self._admin = AdminCommands(admin_masks or [])

    def _is_own(self, nick: str) -> bool:
        return bool(self.nickname) and nick.lower() == self.nickname.lower()

    async def on_connect(self):
        """Join channels and start the outbound consumer."""
        await super().on_connect()
        logger.info("IRC connected to {}", self._server)
        for channel in self._channels:
            await self.join(channel)
        if self._consumer_task is None or self._consumer_task.done():
            self._consumer_task = asyncio.create_task(self._consume_outbound())

    async def on_kick(self, channel: str, target: str, by: str, reason: str | None = None) -> None:
        """Rejoin after a KICK unless it looks like a ban."""
        await super().on_kick(channel, target, by, reason or "")
        if not self._auto_rejoin or not self._is_own(target):
            return
        if reason and "ban" in reason.lower():
            logger.warning("Not rejoining {} (ban detected)", channel)
            return
        await asyncio.sleep(self._rejoin_delay)
        await self.join(channel)
        logger.info("Rejoined {} after KICK", channel)

    async def on_message(self, target, source, message):
        """Channel and private messages."""
        await super().on_message(target, source, message)
        if self._is_own(source):
            return
        info = self.users.get(source) or {}
        command = self._admin.parse(
            message,
            target=target,
            nick=source,
            user=info.get("username") or "",
            host=info.get("hostname") or "",
            is_private=not self.is_channel(target),
        )
        if command is not None:
            await self._run_admin(command, source)
            return
        self._publish(target, source, message, is_action=False)

    async def _run_admin(self, command: AdminCommand, source: str) -> None:
        logger.info("IRC admin {} {} requested by {}", command.action, list(command.channels), source)
        if command.action == "leave":
            channel = command.channels[0]
            await self._throttle.wait()
            await self.message(channel, LEAVE_REPLY)
        for channel in command.channels:
            try:
                if command.action == "join":
                    await self.join(channel)
                else:
                    await self.part(channel)
            except (pydle.AlreadyInChannel, pydle.NotInChannel) as exc:
                logger.warning("IRC admin {} {} skipped: {}", command.action, channel, exc)

    async def on_ctcp_action(self, by, target, message):
        """/me actions are scanned like messages."""
        # pydle dispatches on_ctcp_<type> only when defined; there is no base handler
        if self._is_own(by):
            return
        self._publish(target, by, message, is_action=True)

    def _publish(self, target: str, source: str, message: str, *, is_action: bool) -> None:
        is_private = not self.is_channel(target)
        _, evt = message_in("irc", target, source, message, is_private=is_private, is_action=is_action)
        logger.debug("IRC {} from {} in {}", "action" if is_action else "message", source, target)
        self._bus.publish("irc", evt)

    async def _consume_outbound(self):
        """Send queued lines one at a time through the token bucket."""
        while True:
            evt = await self._outbound.get()
            try:
                await self._send_message(evt)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("IRC send failed: {}", exc)

    async def _send_message(self, evt: MessageOut):
        chunks = split_irc_message(evt.content, max_bytes=self._max_line_bytes)
        for target in evt.targets:
            for chunk in chunks:
                await self._throttle.wait()
                await self.message(target, chunk)
            logger.info("IRC: sent {} notice to {}", evt.source or "bot", target)

    def queue_message(self, evt: MessageOut):
        """Queue outbound message."""
        self._outbound.put_nowait(evt)

    @property
    def pending(self) -> int:
        return self._outbound.qsize()

    async def disconnect(self, expected=True):
        """Stop the consumer, then disconnect."""
        if self._consumer_task:
            self._consumer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer_task
            self._consumer_task = None
        await super().disconnect(expected)
