"""Issue tracker lookups and formats."""

from trackbot.trackers.base import (
    CommitInfo,
    IssueInfo,
    KeyedIssueTracker,
    LookupResult,
    PullRequestInfo,
    Redirect,
    TrackerBase,
)
from trackbot.trackers.bugzilla import BugzillaTracker
from trackbot.trackers.github import GitHubTracker
from trackbot.trackers.http import LookupClient
from trackbot.trackers.jira import JiraTracker
from trackbot.trackers.youtrack import YouTrackTracker

TRACKER_CLASSES: dict[str, type[TrackerBase]] = {
    "bugzilla": BugzillaTracker,
    "jira": JiraTracker,
    "youtrack": YouTrackTracker,
    "github": GitHubTracker,
}

__all__ = [
    "TRACKER_CLASSES",
    "BugzillaTracker",
    "CommitInfo",
    "GitHubTracker",
    "IssueInfo",
    "JiraTracker",
    "KeyedIssueTracker",
    "LookupClient",
    "LookupResult",
    "PullRequestInfo",
    "Redirect",
    "TrackerBase",
    "YouTrackTracker",
]
