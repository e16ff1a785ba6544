"""Bus targets turning webhook deliveries into IRC notices."""

from __future__ import annotations

from typing import Any

from loguru import logger

from trackbot.core.constants import GITHUB_PUSH_LIMIT
from trackbot.core.errors import WebhookPayloadError
from trackbot.dedupe import CommitFingerprint, RecursionScope
from trackbot.events import WebhookIn, external_notice, message_out
from trackbot.gateway import Bus, NotificationDispatcher, TargetResolver
from trackbot.trackers.base import PullRequestInfo
from trackbot.trackers.github import format_commit, format_pull_request, format_push_hidden, format_push_url
from trackbot.trackers.teamcity import format_build, parse_build


def _dig(data: dict[str, Any], *path: str) -> Any:
    obj: Any = data
    for part in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(part)
    return obj


class _WebhookRelay:
    kind = ""

    def __init__(self, bus: Bus) -> None:
        self._bus = bus

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, WebhookIn) and evt.kind == self.kind

    def push_event(self, source: str, evt: object) -> None:
        try:
            self.handle(evt)  # type: ignore[arg-type]
        except WebhookPayloadError as exc:
            logger.warning("Webhook {}: unusable payload: {}", self.kind, exc)

    def handle(self, evt: WebhookIn) -> list[str]:
        raise NotImplementedError

    def _publish(self, targets: list[str], line: str, scope: RecursionScope) -> None:
        _, out = message_out("irc", targets, line, source=f"{self.kind}-webhook", scope=scope)
        self._bus.publish(f"{self.kind}-webhook", out)


class GitHubWebhookRelay(_WebhookRelay):
    """Push and pull request deliveries to the channel named in the hook URL."""

    kind = "github"

    def __init__(
        self,
        bus: Bus,
        notifier: NotificationDispatcher | None = None,
        *,
        github_url: str = "https://github.com",
        default_limit: int = GITHUB_PUSH_LIMIT,
    ) -> None:
        super().__init__(bus)
        self._notifier = notifier
        self._github_url = github_url.rstrip("/")
        self._default_limit = default_limit

    def handle(self, evt: WebhookIn) -> list[str]:
        if not evt.channel:
            raise WebhookPayloadError("github: no channel in hook URL", code="missing_channel")
        if evt.event_type == "push":
            return self._push(evt)
        if evt.event_type == "pull_request":
            return self._pull_request(evt)
        logger.debug("Webhook github: ignoring {} event", evt.event_type or "untyped")
        return []

    def _repo(self, payload: dict[str, Any]) -> tuple[str, str]:
        repo = _dig(payload, "repository", "name")
        org = _dig(payload, "repository", "owner", "login") or _dig(payload, "repository", "owner", "name")
        if not repo or not org:
            raise WebhookPayloadError("github: payload has no repository", code="missing_repository")
        return str(org), str(repo)

    def _limit(self, evt: WebhookIn) -> int | None:
        raw = evt.query.get("limit")
        try:
            limit = int(raw) if raw is not None else self._default_limit
        except ValueError:
            limit = self._default_limit
        return None if limit < 0 else limit

    def _announce(self, targets: list[str], line: str, fps: list[CommitFingerprint], scope: RecursionScope) -> None:
        if self._notifier is not None:
            self._notifier.announce(targets, line, fps, scope)
        else:
            for fp in fps:
                scope.add(fp)
            self._publish(targets, line, scope)

    def _push(self, evt: WebhookIn) -> list[str]:
        payload = evt.payload
        org, repo = self._repo(payload)
        commits = [c for c in payload.get("commits") or () if isinstance(c, dict)]
        if not commits:
            logger.debug("Webhook github: push to {}/{} without commits", org, repo)
            return []
        limit = self._limit(evt)
        shown = commits if limit is None else commits[:limit]
        # refs/heads/7.x -> 7.x
        branch = str(payload.get("ref") or "").rsplit("/", 1)[-1] or None

        lines = []
        for commit in shown:
            author = _dig(commit, "author", "username") or _dig(commit, "author", "name") or "(unknown)"
            sha = str(commit.get("id", ""))
            lines.append(format_commit(repo, sha, str(author), str(commit.get("message", "")), branch=branch))
        hidden = len(commits) - len(shown)
        if hidden > 0:
            lines.append(format_push_hidden(repo, branch, hidden))

        after = str(payload.get("after") or commits[-1].get("id", ""))
        before = str(payload.get("before") or "")
        base = f"{self._github_url}/{org}/{repo}"
        if len(commits) == 1 or not before:
            url = f"{base}/commit/{after[:9]}"
        else:
            url = f"{base}/compare/{before[:7]}...{after[:7]}"
        head = CommitFingerprint(org=org, repo=repo, ref=after[:9], kind="commit")
        url_line = format_push_url(repo, branch, url)

        targets = [evt.channel]
        with RecursionScope() as scope:
            for line in lines:
                self._publish(targets, line, scope)
            self._announce(targets, url_line, [head], scope)
        lines.append(url_line)
        return lines

    def _pull_request(self, evt: WebhookIn) -> list[str]:
        payload = evt.payload
        action = payload.get("action")
        if action not in ("opened", "reopened"):
            logger.debug("Webhook github: ignoring pull request action {}", action)
            return []
        org, repo = self._repo(payload)
        pr = payload.get("pull_request")
        if not isinstance(pr, dict):
            raise WebhookPayloadError("github: pull_request event without pull_request", code="missing_pull_request")
        number = str(pr.get("number") or payload.get("number") or "")
        info = PullRequestInfo(
            org=org,
            repo=repo,
            number=number,
            state=str(pr.get("state", "open")),
            user=str(_dig(pr, "user", "login") or "(unknown)"),
            title=str(pr.get("title", "")),
            url=str(pr.get("html_url", "")),
        )
        line = format_pull_request(info, banner="new git pull req")
        fp = CommitFingerprint(org=org, repo=repo, ref=number, kind="pull_request")
        with RecursionScope() as scope:
            self._announce([evt.channel], line, [fp], scope)
        return [line]


class JiraWebhookRelay(_WebhookRelay):
    """Issue-created deliveries become notices for the jira dispatcher."""

    kind = "jira"

    def handle(self, evt: WebhookIn) -> list[str]:
        webhook_event = evt.event_type or str(evt.payload.get("webhookEvent") or "")
        if webhook_event and not webhook_event.endswith("issue_created"):
            logger.debug("Webhook jira: ignoring {}", webhook_event)
            return []
        key = _dig(evt.payload, "issue", "key")
        if not key:
            raise WebhookPayloadError("jira: payload has no issue.key", code="missing_issue_key")
        _, notice = external_notice("jira", str(key))
        self._bus.publish("jira-webhook", notice)
        return [str(key)]


class TeamCityWebhookRelay(_WebhookRelay):
    """Build notices to the channels of the build's project."""

    kind = "teamcity"

    def __init__(self, bus: Bus, resolver: TargetResolver) -> None:
        super().__init__(bus)
        self._resolver = resolver

    def handle(self, evt: WebhookIn) -> list[str]:
        notice = parse_build(evt.payload)
        targets = self._resolver.project_targets("teamcity", notice.project_id)
        if not targets:
            logger.info("Webhook teamcity: no channels for project {}", notice.project_id)
            return []
        line = format_build(notice)
        with RecursionScope() as scope:
            self._publish(targets, line, scope)
        return [line]
