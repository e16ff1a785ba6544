"""Config schema, accessor and immutable tracker settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from loguru import logger

from trackbot.core.constants import TRACKER_DEFAULTS, TRACKERS
from trackbot.core.errors import TrackbotConfigurationError

# Env keys that override config (loaded once per reload)
_ENV_OVERRIDE_KEYS = (
    "TRACKBOT_IRC_SERVER",
    "TRACKBOT_IRC_NICK",
    "TRACKBOT_IRC_TLS_VERIFY",
)

_WINDOW_KEYS = ("dupe_window_seconds", "notice_window_seconds", "lookup_cache_seconds")


def _load_env_overrides() -> dict[str, str]:
    return {k: os.environ.get(k, "") for k in _ENV_OVERRIDE_KEYS}


def _parse_bool_env(val: str) -> bool | None:
    """Parse env string to bool; None if not a recognized bool."""
    v = val.lower()
    if v in ("1", "true", "yes"):
        return True
    if v in ("0", "false", "no"):
        return False
    return None


def _normalize_url(tracker: str, url: Any) -> str | None:
    """JIRA and YouTrack paths are appended to the site URL, so those keep a trailing slash."""
    if not url or not isinstance(url, str) or not url.strip():
        return None
    url = url.strip()
    if tracker in ("jira", "youtrack"):
        return url if url.endswith("/") else url + "/"
    return url.rstrip("/")


@dataclass(frozen=True)
class ProjectSettings:
    """Per-project site URL and notification channels."""

    key: str
    url: str | None = None
    channels: tuple[str, ...] = ()


@dataclass(frozen=True)
class TrackerSettings:
    """Snapshot of one tracker's settings. Replaced wholesale on reload."""

    name: str
    enabled: bool = False
    url: str | None = None
    api_url: str | None = None
    default_org: str | None = None
    dupe_window_seconds: float = 10.0
    notice_window_seconds: float = 15.0
    lookup_cache_seconds: float = 0.0
    max_matches: int = 5
    rescan_outbound: bool = False
    ignored: frozenset[str] = frozenset()
    channels: tuple[str, ...] = ()
    projects: Mapping[str, ProjectSettings] = field(default_factory=lambda: MappingProxyType({}))

    def site_for(self, project: str) -> str | None:
        """Site URL for a project key, falling back to the tracker default."""
        p = self.projects.get(project)
        if p is not None and p.url:
            return p.url
        return self.url

    def is_ignored(self, project: str) -> bool:
        return project.upper() in self.ignored


def build_tracker_settings(name: str, section: dict[str, Any] | None) -> TrackerSettings:
    """Merge a raw ``trackers.<name>`` section over the built-in defaults."""
    data: dict[str, Any] = dict(TRACKER_DEFAULTS.get(name, {}))
    if isinstance(section, dict):
        data.update(section)

    projects: dict[str, ProjectSettings] = {}
    raw_projects = data.get("projects")
    if isinstance(raw_projects, dict):
        for key, item in raw_projects.items():
            item = item if isinstance(item, dict) else {}
            pkey = str(key).upper()
            projects[pkey] = ProjectSettings(
                key=pkey,
                url=_normalize_url(name, item.get("url")),
                channels=tuple(str(c) for c in item.get("channels") or ()),
            )

    return TrackerSettings(
        name=name,
        enabled=isinstance(section, dict) and bool(section.get("enabled", True)),
        url=_normalize_url(name, data.get("url")),
        api_url=_normalize_url(name, data.get("api_url")),
        default_org=str(data["default_org"]) if data.get("default_org") else None,
        dupe_window_seconds=float(data.get("dupe_window_seconds", 10.0)),
        notice_window_seconds=float(data.get("notice_window_seconds", data.get("dupe_window_seconds", 15.0))),
        lookup_cache_seconds=float(data.get("lookup_cache_seconds", 0.0)),
        max_matches=int(data.get("max_matches", 5)),
        rescan_outbound=bool(data.get("rescan_outbound", False)),
        ignored=frozenset(str(p).upper() for p in data.get("ignored") or ()),
        channels=tuple(str(c) for c in data.get("channels") or ()),
        projects=MappingProxyType(projects),
    )


class Config:
    """Config accessor with attribute-style access for known keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}
        self._env: dict[str, str] = _load_env_overrides()

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data (e.g. on SIGHUP reload)."""
        self._data = data or {}
        self._env = _load_env_overrides()
        if validate:
            self._validate()
        logger.debug("Config reloaded: trackers {}", self.tracker_names)

    def _validate(self) -> None:
        """Validate config structure; raise TrackbotConfigurationError on failure."""
        channels = self._data.get("irc_channels")
        if channels is not None and not isinstance(channels, list):
            raise TrackbotConfigurationError(
                "irc_channels must be a list",
                code="invalid_irc_channels",
                details={"type": type(channels).__name__},
            )
        trackers = self._data.get("trackers")
        if trackers is None:
            return
        if not isinstance(trackers, dict):
            raise TrackbotConfigurationError(
                "trackers must be a mapping",
                code="invalid_trackers",
                details={"type": type(trackers).__name__},
            )
        for name, section in trackers.items():
            if name not in TRACKERS:
                raise TrackbotConfigurationError(
                    f"unknown tracker {name!r}",
                    code="unknown_tracker",
                    details={"tracker": name},
                )
            if section is None:
                continue
            if not isinstance(section, dict):
                raise TrackbotConfigurationError(
                    f"trackers.{name} must be a mapping",
                    code="invalid_tracker_section",
                    details={"tracker": name},
                )
            for key in _WINDOW_KEYS:
                val = section.get(key)
                if val is not None and (not isinstance(val, (int, float)) or val < 0):
                    raise TrackbotConfigurationError(
                        f"trackers.{name}.{key} must be a non-negative number",
                        code="invalid_window",
                        details={"tracker": name, "key": key, "value": val},
                    )
            max_matches = section.get("max_matches")
            if max_matches is not None and (not isinstance(max_matches, int) or max_matches < 0):
                raise TrackbotConfigurationError(
                    f"trackers.{name}.max_matches must be a non-negative integer",
                    code="invalid_max_matches",
                    details={"tracker": name, "value": max_matches},
                )
            projects = section.get("projects")
            if projects is not None and not isinstance(projects, dict):
                raise TrackbotConfigurationError(
                    f"trackers.{name}.projects must be a mapping",
                    code="invalid_projects",
                    details={"tracker": name},
                )

    @property
    def raw(self) -> dict[str, Any]:
        """Raw config dict for the target resolver."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def tracker(self, name: str) -> TrackerSettings:
        """Immutable settings snapshot for one tracker. An empty section enables defaults."""
        trackers = self._data.get("trackers")
        section = None
        if isinstance(trackers, dict) and name in trackers:
            section = trackers[name] or {}
        return build_tracker_settings(name, section)

    @property
    def tracker_names(self) -> list[str]:
        """Trackers configured and not disabled, in canonical order."""
        trackers = self._data.get("trackers")
        if not isinstance(trackers, dict):
            return []
        return [name for name in TRACKERS if name in trackers and self.tracker(name).enabled]

    @property
    def irc_server(self) -> str:
        return self._env.get("TRACKBOT_IRC_SERVER") or str(self._data.get("irc_server", "irc.libera.chat"))

    @property
    def irc_port(self) -> int:
        return int(self._data.get("irc_port", 6697))

    @property
    def irc_tls(self) -> bool:
        return bool(self._data.get("irc_tls", True))

    @property
    def irc_tls_verify(self) -> bool:
        parsed = _parse_bool_env(self._env.get("TRACKBOT_IRC_TLS_VERIFY", ""))
        if parsed is not None:
            return parsed
        return bool(self._data.get("irc_tls_verify", True))

    @property
    def irc_nick(self) -> str:
        return self._env.get("TRACKBOT_IRC_NICK") or str(self._data.get("irc_nick", "trackbot"))

    @property
    def irc_channels(self) -> list[str]:
        val = self._data.get("irc_channels")
        if isinstance(val, list):
            return [str(c) for c in val]
        return []

    @property
    def irc_admin_masks(self) -> list[str]:
        """nick!user@host globs allowed to use %join and %part. A string is split on commas."""
        val = self._data.get("irc_admin_masks")
        if isinstance(val, str):
            val = val.split(",")
        if isinstance(val, list):
            return [str(m).strip() for m in val if str(m).strip()]
        return []

    @property
    def irc_throttle_limit(self) -> int:
        return int(self._data.get("irc_throttle_limit", 5))

    @property
    def irc_rejoin_delay(self) -> float:
        return float(self._data.get("irc_rejoin_delay", 5))

    @property
    def irc_auto_rejoin(self) -> bool:
        return bool(self._data.get("irc_auto_rejoin", True))

    @property
    def http_connect_timeout(self) -> float:
        return float(self._data.get("http_connect_timeout", 4.0))

    @property
    def http_read_timeout(self) -> float:
        return float(self._data.get("http_read_timeout", 10.0))

    @property
    def webhooks_enabled(self) -> bool:
        return bool(self._data.get("webhooks_enabled", False))

    @property
    def webhooks_host(self) -> str:
        return str(self._data.get("webhooks_host", "0.0.0.0"))

    @property
    def webhooks_port(self) -> int:
        return int(self._data.get("webhooks_port", 8080))

    @property
    def webhooks_path_prefix(self) -> str:
        prefix = str(self._data.get("webhooks_path_prefix", "/trackbot")).rstrip("/")
        return prefix if prefix.startswith("/") else "/" + prefix


cfg: Config = Config({})
