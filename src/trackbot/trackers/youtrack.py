"""YouTrack: PROJECT-123 keys resolved through the legacy REST API."""

from __future__ import annotations

from loguru import logger

from trackbot.core.errors import TrackerLookupError
from trackbot.dedupe import Fingerprint, IssueFingerprint
from trackbot.trackers.base import IssueInfo, KeyedIssueTracker, LookupResult, parse_xml


class YouTrackTracker(KeyedIssueTracker):
    name = "youtrack"
    banner = "youtrack"

    async def fetch(self, fingerprint: Fingerprint) -> LookupResult | None:
        if not isinstance(fingerprint, IssueFingerprint):
            return None
        key = fingerprint.issue_id
        resp = await self._client.get(f"{fingerprint.server}rest/issue/{key}")
        redirect = self._redirect(resp, key)
        if redirect is not None:
            return redirect
        if resp.status_code != 200:
            logger.debug("youtrack: {} answered {} for {}", fingerprint.server, resp.status_code, key)
            return None

        issue = parse_xml(resp.content, key)
        if issue.tag != "issue":
            raise TrackerLookupError(f"youtrack: unexpected root <{issue.tag}> for {key}", code="invalid_xml")
        fields: dict[str, str] = {}
        for field in issue.findall("field"):
            value = field.find("value")
            if field.get("name") and value is not None and value.text:
                fields[field.get("name")] = value.text.strip()
        summary = fields.get("summary")
        if summary is None:
            raise TrackerLookupError(
                f"youtrack: {key} has no summary",
                code="missing_field",
                details={"key": key, "field": "summary"},
            )
        state = fields.get("state", "(?)")
        kind = fields.get("type")
        return IssueInfo(
            key=issue.get("id") or key,
            summary=summary,
            status=f"{state} {kind}" if kind else state,
            priority=fields.get("priority", "(?)"),
            assignee=fields.get("assigneeFullName", "(unassigned)"),
            link=f"{fingerprint.server}issue/{key}",
        )
