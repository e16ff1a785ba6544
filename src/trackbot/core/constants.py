"""Tracker names and per-tracker defaults."""

from __future__ import annotations

from typing import Any, Literal

TrackerName = Literal["bugzilla", "jira", "youtrack", "github", "teamcity"]
TRACKERS: tuple[TrackerName, ...] = ("bugzilla", "jira", "youtrack", "github", "teamcity")

TRACKER_DEFAULTS: dict[str, dict[str, Any]] = {
    "bugzilla": {
        "url": "https://bugzilla.redhat.com",
        "dupe_window_seconds": 10.0,
        "max_matches": 5,
        "lookup_cache_seconds": 0.0,
        # Only bugzilla scans the bot's own outbound lines
        "rescan_outbound": True,
    },
    "jira": {
        "url": None,
        "dupe_window_seconds": 20.0,
        "notice_window_seconds": 15.0,
        "max_matches": 20,
        "lookup_cache_seconds": 45.0,
        "ignored": ["JSR"],
    },
    "youtrack": {
        "url": None,
        "dupe_window_seconds": 10.0,
        "max_matches": 5,
        "lookup_cache_seconds": 0.0,
    },
    "github": {
        "url": "https://github.com",
        "api_url": "https://api.github.com",
        "default_org": "wildfly",
        "dupe_window_seconds": 10.0,
        "max_matches": 10,
        "lookup_cache_seconds": 0.0,
    },
    "teamcity": {
        "url": None,
        "dupe_window_seconds": 10.0,
        "max_matches": 0,
        "lookup_cache_seconds": 0.0,
    },
}

# Webhook push notices list at most this many commits unless ?limit= says otherwise.
GITHUB_PUSH_LIMIT = 7
