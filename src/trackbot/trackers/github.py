"""GitHub: commit and pull request references."""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

from loguru import logger

from trackbot.config import TrackerSettings
from trackbot.core.errors import TrackerLookupError
from trackbot.dedupe import CommitFingerprint, Fingerprint
from trackbot.formatting.irc_format import BLUE, CYAN, GREY, ORANGE, PURPLE, TEAL, IrcText
from trackbot.trackers.base import (
    CommitInfo,
    LookupResult,
    PullRequestInfo,
    Redirect,
    TrackerBase,
    format_redirect,
)
from trackbot.trackers.http import LookupClient

COMMIT_URL_RE = re.compile(
    r"https?://(?:www\.)?github\.com/+(?P<org>[^/\s]+)/+(?P<repo>[^/\s]+)/+(?:commit|blob)/+(?P<ref>[0-9a-fA-F]+)"
)
COMMIT_MANUAL_RE = re.compile(r"%git\s+(?:(?P<org>\S+)\s+)?(?P<repo>\S+)\s+(?P<ref>[0-9a-fA-F]+)\b")
PULL_SHORT_RE = re.compile(r"(?:(?P<org>[-A-Za-z0-9_]+)/)?(?P<repo>[-A-Za-z0-9_]+)\s+#(?P<ref>\d+)")
PULL_URL_RE = re.compile(r"https?://(?:www\.)?github\.com/+(?P<org>[^/\s]+)/+(?P<repo>[^/\s]+)/+pull/+(?P<ref>\d+)")

_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (COMMIT_URL_RE, "commit"),
    (COMMIT_MANUAL_RE, "commit"),
    (PULL_SHORT_RE, "pull_request"),
    (PULL_URL_RE, "pull_request"),
)

# Bugzilla's "bz #123" is not a pull request of repo "bz"
_NOT_REPOS = frozenset({"bz"})


class GitHubTracker(TrackerBase):
    name = "github"
    banner = "git"

    def __init__(self, client: LookupClient, *, api_url: str = "https://api.github.com") -> None:
        super().__init__(client)
        self.api_url = api_url

    def configure(self, settings: TrackerSettings) -> None:
        if settings.api_url:
            self.api_url = settings.api_url

    def extract(self, text: str, settings: TrackerSettings) -> Iterator[CommitFingerprint]:
        found: list[tuple[int, CommitFingerprint]] = []
        for pattern, kind in _PATTERNS:
            for m in pattern.finditer(text):
                org = m.group("org") or settings.default_org
                repo = m.group("repo")
                if not org or repo.lower() in _NOT_REPOS:
                    continue
                found.append((m.start(), CommitFingerprint(org=org, repo=repo, ref=m.group("ref"), kind=kind)))
        found.sort(key=lambda pair: pair[0])
        for _, fp in found:
            yield fp

    def _api(self, fingerprint: CommitFingerprint, api_url: str) -> str:
        path = "pulls" if fingerprint.kind == "pull_request" else "commits"
        return f"{api_url}/repos/{fingerprint.org}/{fingerprint.repo}/{path}/{fingerprint.ref}"

    async def fetch(self, fingerprint: Fingerprint) -> LookupResult | None:
        if not isinstance(fingerprint, CommitFingerprint):
            return None
        resp = await self._client.get(
            self._api(fingerprint, self.api_url),
            headers={"Accept": "application/vnd.github+json"},
        )
        redirect = self._redirect(resp, str(fingerprint))
        if redirect is not None:
            return redirect
        if resp.status_code != 200:
            logger.debug("github: {} answered {}", fingerprint, resp.status_code)
            return None
        try:
            data: dict[str, Any] = resp.json()
        except ValueError as exc:
            raise TrackerLookupError(
                f"github: invalid JSON for {fingerprint}",
                code="invalid_json",
                details={"key": str(fingerprint)},
                original_error=exc,
            ) from exc
        try:
            if fingerprint.kind == "pull_request":
                return PullRequestInfo(
                    org=fingerprint.org,
                    repo=fingerprint.repo,
                    number=str(data["number"]),
                    state=str(data["state"]),
                    user=str(data["user"]["login"]),
                    title=str(data["title"]),
                    url=str(data["html_url"]),
                )
            commit = data["commit"]
            return CommitInfo(
                org=fingerprint.org,
                repo=fingerprint.repo,
                sha=str(data["sha"]),
                author=str(commit["author"]["name"]),
                message=str(commit["message"]),
                url=str(data.get("html_url") or ""),
            )
        except (KeyError, TypeError) as exc:
            raise TrackerLookupError(
                f"github: incomplete response for {fingerprint}",
                code="missing_field",
                details={"key": str(fingerprint)},
                original_error=exc,
            ) from exc

    def format(self, fingerprint: Fingerprint, result: LookupResult, *, banner: str | None = None) -> str:
        if isinstance(result, Redirect):
            return format_redirect(banner or self.banner, result.key, result.location)
        if isinstance(result, PullRequestInfo):
            return format_pull_request(result, banner=banner or "git pull req")
        if isinstance(result, CommitInfo):
            return format_commit(result.repo, result.sha, result.author, result.message, banner=banner or self.banner)
        raise TypeError(f"github cannot format {type(result).__name__}")


def _push_prefix(repo: str, branch: str | None, banner: str) -> IrcText:
    t = IrcText()
    t.b().append(banner).b().nc().append(" [").fc(BLUE).append(repo).nc().append("]")
    if branch:
        t.append(" ").b().append("push ").b().nc().fc(TEAL).append(branch).nc()
    return t


def format_commit(
    repo: str, sha: str, author: str, message: str, *, branch: str | None = None, banner: str = "git"
) -> str:
    """``git [repo] abcdef1.. author first line of message``.

    Push notices pass ``branch`` and read ``git [repo] push <branch> abcdef1.. ...``.
    """
    lines = message.strip().splitlines() or [""]
    t = _push_prefix(repo, branch, banner)
    t.fc(ORANGE).append(" ").append(sha[:7]).append("..").nc().append(" ")
    t.fc(PURPLE).append(author).nc().append(" ").append(lines[0].strip())
    if len(lines) > 1:
        t.fc(GREY).append("...").nc()
    return str(t)


def format_push_hidden(repo: str, branch: str | None, hidden: int, *, banner: str = "git") -> str:
    """``git [repo] push <branch> (N additional commits not shown)``."""
    t = _push_prefix(repo, branch, banner)
    t.append(f" ({hidden} additional commit{'s' if hidden != 1 else ''} not shown)")
    return str(t)


def format_push_url(repo: str, branch: str | None, url: str, *, banner: str = "git") -> str:
    """``git [repo] push <branch> URL: <url>``."""
    t = _push_prefix(repo, branch, banner)
    t.append(" ").b().append("URL: ").nc().append(url)
    return str(t)


def format_pull_request(info: PullRequestInfo, *, banner: str = "git pull req") -> str:
    """``git pull req [repo] (state) login title url``."""
    t = IrcText()
    t.b().append(banner).b().nc().append(" [").fc(BLUE).append(info.repo).nc().append("] (")
    t.fc(ORANGE).append(info.state).nc().append(") ")
    t.fc(PURPLE).append(info.user).nc().append(" ").append(info.title)
    t.fc(CYAN).append(" ").append(info.url).nc()
    return str(t)
