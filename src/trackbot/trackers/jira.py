"""JIRA: PROJECT-123 keys resolved through the issue XML view."""

from __future__ import annotations

from loguru import logger

from trackbot.core.errors import TrackerLookupError
from trackbot.dedupe import Fingerprint, IssueFingerprint
from trackbot.trackers.base import IssueInfo, KeyedIssueTracker, LookupResult, child_text, parse_xml

_REQUIRED = ("summary", "key", "status", "priority", "assignee", "link")


class JiraTracker(KeyedIssueTracker):
    name = "jira"
    banner = "jira"

    def issue_xml_url(self, fingerprint: IssueFingerprint) -> str:
        key = fingerprint.issue_id
        return f"{fingerprint.server}si/jira.issueviews:issue-xml/{key}/{key}.xml"

    async def fetch(self, fingerprint: Fingerprint) -> LookupResult | None:
        if not isinstance(fingerprint, IssueFingerprint):
            return None
        key = fingerprint.issue_id
        resp = await self._client.get(self.issue_xml_url(fingerprint))
        redirect = self._redirect(resp, key)
        if redirect is not None:
            return redirect
        if resp.status_code != 200:
            logger.debug("jira: {} answered {} for {}", fingerprint.server, resp.status_code, key)
            return None

        root = parse_xml(resp.content, key)
        item = root.find("channel/item")
        if item is None:
            raise TrackerLookupError(f"jira: no item in XML view of {key}", code="missing_item", details={"key": key})
        values = {tag: child_text(item, tag) for tag in _REQUIRED}
        missing = [tag for tag, val in values.items() if val is None]
        if missing:
            raise TrackerLookupError(
                f"jira: {key} is missing {', '.join(missing)}",
                code="missing_field",
                details={"key": key, "fields": missing},
            )
        components = tuple(
            el.text.strip() for el in item.findall("component") if el.text and el.text.strip()
        )
        return IssueInfo(
            key=values["key"],
            summary=values["summary"],
            status=values["status"],
            priority=values["priority"],
            assignee=values["assignee"],
            link=values["link"],
            kind=child_text(item, "type", "unknown"),
            resolution=child_text(item, "resolution"),
            components=components,
        )
