"""Target resolution: where a notification for an event or project goes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from trackbot.events import ExternalNotice, MessageIn, MessageOut

BROADCAST = "*"


@dataclass(frozen=True)
class ProjectRoute:
    """Channels configured for one tracker project (or the tracker default when project is None)."""

    tracker: str
    project: str | None
    channels: tuple[str, ...]


class TargetResolver:
    """Resolves reply targets for chat events and channel lists for project notices.

    Mappings come from ``trackers.<name>.projects.<KEY>.channels`` with
    ``trackers.<name>.channels`` as the per-tracker fallback. A ``"*"`` entry
    expands to every configured IRC channel.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str | None], ProjectRoute] = {}
        self._broadcast: tuple[str, ...] = ()

    def load_from_config(self, config: dict[str, Any]) -> None:
        """Rebuild routes from the raw config dict."""
        channels = config.get("irc_channels")
        self._broadcast = tuple(str(c) for c in channels) if isinstance(channels, list) else ()

        trackers = config.get("trackers")
        if not isinstance(trackers, dict):
            logger.warning("Router: no trackers in config; project notices disabled")
            self._routes = {}
            return

        routes: dict[tuple[str, str | None], ProjectRoute] = {}
        for name, section in trackers.items():
            if not isinstance(section, dict):
                continue
            default = section.get("channels")
            if isinstance(default, list) and default:
                routes[(name, None)] = ProjectRoute(name, None, tuple(str(c) for c in default))
            projects = section.get("projects")
            if not isinstance(projects, dict):
                continue
            for key, item in projects.items():
                if not isinstance(item, dict):
                    continue
                chans = item.get("channels")
                if isinstance(chans, list) and chans:
                    pkey = str(key).upper()
                    routes[(name, pkey)] = ProjectRoute(name, pkey, tuple(str(c) for c in chans))
        self._routes = routes
        logger.info(
            "Router: loaded {} project routes, {} broadcast channels",
            len(routes),
            len(self._broadcast),
        )

    def reply_targets(self, evt: object) -> list[str]:
        """Reply target of a chat line: channel, private sender, or the outbound targets."""
        if isinstance(evt, MessageIn):
            return [evt.reply_to] if evt.reply_to else []
        if isinstance(evt, MessageOut):
            return list(evt.targets)
        if isinstance(evt, ExternalNotice):
            return []
        return []

    def project_targets(self, tracker: str, project: str | None) -> list[str]:
        """Channels for a project, falling back to the tracker default. Empty if unmapped."""
        route = None
        if project is not None:
            route = self._routes.get((tracker, project.upper()))
        if route is None:
            route = self._routes.get((tracker, None))
        if route is None:
            return []
        targets: list[str] = []
        for channel in route.channels:
            expanded = self._broadcast if channel == BROADCAST else (channel,)
            for c in expanded:
                if c not in targets:
                    targets.append(c)
        return targets

    def all_routes(self) -> list[ProjectRoute]:
        return list(self._routes.values())
