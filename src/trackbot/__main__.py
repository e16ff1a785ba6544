"""Trackbot entrypoint. Loads config, wires trackers to the bus, runs IRC and webhooks."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from trackbot import __version__
from trackbot.adapters.irc import IRCAdapter
from trackbot.config import Config, cfg, load_config_with_env
from trackbot.events import config_reload
from trackbot.gateway import Bus, NotificationDispatcher, TargetResolver
from trackbot.trackers import TRACKER_CLASSES, LookupClient
from trackbot.webhooks import GitHubWebhookRelay, JiraWebhookRelay, TeamCityWebhookRelay, WebhookServer


class Service(Protocol):
    """Anything with a start/stop lifecycle."""

    async def start(self) -> None: ...
    async def stop(self) -> None: ...


# Third-party libraries to intercept and route through loguru
_INTERCEPTED_LIBRARIES = ["pydle", "pydle.client", "pydle.connection", "aiohttp.access", "aiohttp.server", "httpx"]


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        msg = record.getMessage().replace("{", "{{").replace("}", "}}")
        logger.patch(
            lambda r: r.update(name=record.name, function=record.funcName, line=record.lineno),
        ).opt(exception=record.exc_info).log(level, msg)


def _intercept_logging(level: str) -> None:
    """Route third-party library logs to loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for lib in _INTERCEPTED_LIBRARIES:
        lib_logger = logging.getLogger(lib)
        lib_logger.handlers = [InterceptHandler()]
        lib_logger.propagate = False
        lib_logger.setLevel(level)


def _safe_message_filter(record: Any) -> bool:
    """Escape braces/angles in log messages to prevent format/tag errors."""
    if isinstance(record.get("message"), str):
        msg = record["message"]
        msg = msg.replace("{", "{{").replace("}", "}}").replace("<", "\\<")
        record["message"] = msg
    return True


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. verbose=True or LOG_LEVEL=DEBUG enables DEBUG; otherwise INFO."""
    level = "INFO"
    if verbose:
        level = "DEBUG"
    else:
        env_level = (os.environ.get("LOG_LEVEL") or "").upper()
        if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            level = env_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}",
        filter=_safe_message_filter,
    )
    _intercept_logging(level)


def reload_config(config_path: Path) -> Config:
    """Load config from path and update global cfg."""
    data = load_config_with_env(config_path)
    cfg.reload(data)
    return cfg


def build_dispatchers(bus: Bus, resolver: TargetResolver, client: LookupClient) -> dict[str, NotificationDispatcher]:
    """One NotificationDispatcher per configured lookup tracker, registered on the bus."""
    dispatchers: dict[str, NotificationDispatcher] = {}
    for name in cfg.tracker_names:
        tracker_cls = TRACKER_CLASSES.get(name)
        if tracker_cls is None:
            continue
        dispatcher = NotificationDispatcher(bus, tracker_cls(client), resolver, cfg.tracker(name))
        bus.register(dispatcher)
        dispatchers[name] = dispatcher
        logger.info("Tracker {} enabled", name)
    return dispatchers


def build_relays(bus: Bus, resolver: TargetResolver, dispatchers: dict[str, NotificationDispatcher]) -> list[object]:
    """Webhook relays for GitHub, JIRA and TeamCity."""
    github = cfg.tracker("github")
    relays: list[object] = [
        GitHubWebhookRelay(bus, dispatchers.get("github"), github_url=github.url or "https://github.com"),
        JiraWebhookRelay(bus),
        TeamCityWebhookRelay(bus, resolver),
    ]
    for relay in relays:
        bus.register(relay)  # type: ignore[arg-type]
    return relays


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="trackbot: IRC notifications for issue trackers")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.config.exists():
        logger.error("Config file not found: {}", args.config)
        sys.exit(1)

    config = reload_config(args.config)
    logger.info("Config loaded from {}", args.config)

    bus = Bus()
    resolver = TargetResolver()
    resolver.load_from_config(config.raw)
    client = LookupClient(connect_timeout=config.http_connect_timeout, read_timeout=config.http_read_timeout)

    def on_sighup(*a: object, **kw: object) -> None:
        config = reload_config(args.config)
        resolver.load_from_config(config.raw)
        client.configure(connect_timeout=config.http_connect_timeout, read_timeout=config.http_read_timeout)
        _, evt = config_reload()
        bus.publish("main", evt)
        logger.info("Config reloaded (SIGHUP)")

    signal.signal(signal.SIGHUP, on_sighup)

    dispatchers = build_dispatchers(bus, resolver, client)
    build_relays(bus, resolver, dispatchers)
    if not dispatchers:
        logger.warning("No trackers configured; only webhook relays are active")

    asyncio.run(_run(bus, dispatchers))


async def _run(bus: Bus, dispatchers: dict[str, NotificationDispatcher]) -> None:
    """Async run loop. Start services and wait."""
    services: list[Service] = [IRCAdapter(bus)]
    if cfg.webhooks_enabled:
        services.append(
            WebhookServer(
                bus,
                host=cfg.webhooks_host,
                port=cfg.webhooks_port,
                path_prefix=cfg.webhooks_path_prefix,
            )
        )
    purgers = [asyncio.create_task(d.purge_forever()) for d in dispatchers.values()]

    logger.info("Starting services")
    for service in services:
        await service.start()

    try:
        while True:
            await asyncio.sleep(60)
    except asyncio.CancelledError:
        logger.info("Trackbot shutting down")
        for task in purgers:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for service in services:
            name = getattr(service, "name", service.__class__.__name__)
            logger.info("Stopping {}", name)
            await service.stop()
        for dispatcher in dispatchers.values():
            await dispatcher.drain()


if __name__ == "__main__":
    main()
