"""Bugzilla: ``bz#123`` mentions and show_bug.cgi URLs."""

from __future__ import annotations

import re
from collections.abc import Iterator

from loguru import logger

from trackbot.config import TrackerSettings
from trackbot.core.errors import TrackerLookupError
from trackbot.dedupe import Fingerprint, IssueFingerprint
from trackbot.formatting.irc_format import GREEN, ORANGE, PURPLE, TEAL, IrcText
from trackbot.trackers.base import (
    IssueInfo,
    LookupResult,
    Redirect,
    TrackerBase,
    child_text,
    format_redirect,
    parse_xml,
)

BUG_RE = re.compile(
    r"(?:(?P<server>https?://[-.a-zA-Z0-9_]+(?::\d+)?(?:/[^\s?/]+)*)/show_bug\.cgi\?id="
    r"|\bbz\s*#)(?P<id>\d+)",
    re.IGNORECASE,
)


class BugzillaTracker(TrackerBase):
    """Looks bugs up through Bugzilla's XML export."""

    name = "bugzilla"
    banner = "bugzilla"

    def extract(self, text: str, settings: TrackerSettings) -> Iterator[IssueFingerprint]:
        for m in BUG_RE.finditer(text):
            server = m.group("server") or settings.url
            if not server:
                continue
            yield IssueFingerprint(server=server.rstrip("/"), issue_id=m.group("id"))

    def fingerprint_for_key(self, key: str, settings: TrackerSettings) -> IssueFingerprint | None:
        key = key.strip().lstrip("#")
        if not key.isdigit() or not settings.url:
            return None
        return IssueFingerprint(server=settings.url, issue_id=key)

    def bug_url(self, fingerprint: IssueFingerprint) -> str:
        return f"{fingerprint.server}/show_bug.cgi?id={fingerprint.issue_id}"

    async def fetch(self, fingerprint: Fingerprint) -> LookupResult | None:
        if not isinstance(fingerprint, IssueFingerprint):
            return None
        bug_id = fingerprint.issue_id
        resp = await self._client.get(
            f"{fingerprint.server}/show_bug.cgi",
            params={"id": bug_id, "ctype": "xml"},
        )
        redirect = self._redirect(resp, f"#{bug_id}")
        if redirect is not None:
            return redirect
        if resp.status_code != 200:
            logger.debug("bugzilla: {} answered {} for #{}", fingerprint.server, resp.status_code, bug_id)
            return None

        root = parse_xml(resp.content, bug_id)
        bug = root.find("bug")
        if bug is None or bug.get("error"):
            error = bug.get("error") if bug is not None else "empty"
            logger.debug("bugzilla: no bug #{} on {} ({})", bug_id, fingerprint.server, error)
            return None
        summary = child_text(bug, "short_desc")
        if summary is None:
            raise TrackerLookupError(
                f"bugzilla: bug #{bug_id} has no short_desc",
                code="missing_field",
                details={"key": bug_id, "field": "short_desc"},
            )
        status = child_text(bug, "bug_status", "(?)")
        kind = child_text(bug, "cf_type")
        assigned = bug.find("assigned_to")
        assignee = "(unassigned)"
        if assigned is not None:
            assignee = assigned.get("name") or (assigned.text or "").strip() or assignee
        return IssueInfo(
            key=f"#{bug_id}",
            summary=summary,
            status=f"{status} {kind}" if kind else status,
            priority=child_text(bug, "bug_severity", "(?)"),
            assignee=assignee,
            link=self.bug_url(fingerprint),
            product=child_text(bug, "product", "(?)"),
        )

    def format(self, fingerprint: Fingerprint, result: LookupResult, *, banner: str | None = None) -> str:
        banner = banner or self.banner
        if isinstance(result, Redirect):
            return format_redirect(banner, result.key, result.location)
        if not isinstance(result, IssueInfo):
            raise TypeError(f"bugzilla cannot format {type(result).__name__}")
        t = IrcText()
        t.b().append(banner).b().nc().append(" [").fc(GREEN).append(result.product or "(?)").append(" ")
        t.b().append(result.key).b().nc().append("] ").append(result.summary)
        t.append(" [").fc(TEAL).append(result.status).nc().append(",")
        t.fc(ORANGE).append(" ").append(result.priority).nc().append(",")
        t.fc(PURPLE).append(" ").append(result.assignee).nc().append("] ").append(result.link)
        return str(t)
