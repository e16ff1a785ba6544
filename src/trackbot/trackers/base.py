"""Tracker interface, lookup result types and shared helpers."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Union

import httpx
from loguru import logger

from trackbot.config import TrackerSettings
from trackbot.core.errors import TrackerLookupError
from trackbot.dedupe import Fingerprint, IssueFingerprint
from trackbot.formatting.irc_format import BROWN, CYAN, GREEN, ORANGE, PURPLE, TEAL, IrcText
from trackbot.trackers.http import REDIRECT_CODES, LookupClient

# JIRA and YouTrack keys: project of 2+ characters starting with two letters
ISSUE_KEY_RE = re.compile(r"\b([A-Z]{2}[A-Z0-9]*)-\d+", re.IGNORECASE)


@dataclass(frozen=True)
class IssueInfo:
    """Issue metadata for the summary line."""

    key: str
    summary: str
    status: str
    priority: str
    assignee: str
    link: str
    kind: str | None = None
    resolution: str | None = None
    components: tuple[str, ...] = ()
    product: str | None = None


@dataclass(frozen=True)
class Redirect:
    """The tracker answered with an HTTP redirect instead of the issue."""

    key: str
    location: str


@dataclass(frozen=True)
class CommitInfo:
    org: str
    repo: str
    sha: str
    author: str
    message: str
    url: str


@dataclass(frozen=True)
class PullRequestInfo:
    org: str
    repo: str
    number: str
    state: str
    user: str
    title: str
    url: str


LookupResult = Union[IssueInfo, Redirect, CommitInfo, PullRequestInfo]


def parse_xml(content: bytes, key: str) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as exc:
        raise TrackerLookupError(
            f"Unparseable XML for {key}",
            code="invalid_xml",
            details={"key": key},
            original_error=exc,
        ) from exc


def child_text(parent: ET.Element, tag: str, default: str | None = None) -> str | None:
    el = parent.find(tag)
    if el is None or el.text is None or not el.text.strip():
        return default
    return el.text.strip()


def format_redirect(banner: str, key: str, location: str) -> str:
    t = IrcText()
    t.b().append(banner).b().nc().append(" [").fc(GREEN).append(key).nc().append("] ")
    t.fc(ORANGE).append("Redirected to: ").fc(CYAN).append(location).nc()
    return str(t)


class TrackerBase(ABC):
    """One issue tracker: finds references in text, fetches and formats them."""

    name: str = ""
    banner: str = ""

    def __init__(self, client: LookupClient) -> None:
        self._client = client

    @abstractmethod
    def extract(self, text: str, settings: TrackerSettings) -> Iterator[Fingerprint]:
        """Yield fingerprints referenced in text, left to right, duplicates included."""
        ...

    def configure(self, settings: TrackerSettings) -> None:
        """Pick up settings the lookup itself needs (called on start and reload)."""
        pass

    def fingerprint_for_key(self, key: str, settings: TrackerSettings) -> Fingerprint | None:
        """Fingerprint for a bare key from a webhook; None if malformed or ignored."""
        return None

    def project_of(self, fingerprint: Fingerprint) -> str | None:
        """Project key used for channel routing."""
        return None

    @abstractmethod
    async def fetch(self, fingerprint: Fingerprint) -> LookupResult | None:
        """Look the reference up. None when the tracker does not know it.

        Raises httpx.HTTPError on transport failure and TrackerLookupError on an
        unusable response.
        """
        ...

    @abstractmethod
    def format(self, fingerprint: Fingerprint, result: LookupResult, *, banner: str | None = None) -> str:
        """One formatted IRC line."""
        ...

    def _redirect(self, resp: httpx.Response, key: str) -> Redirect | None:
        if resp.status_code not in REDIRECT_CODES:
            return None
        location = resp.headers.get("location")
        if not location:
            raise TrackerLookupError(
                f"{self.name}: redirect for {key} without Location",
                code="redirect_without_location",
                details={"key": key, "status": resp.status_code},
            )
        logger.debug("{}: {} redirected to {}", self.name, key, location)
        return Redirect(key=key, location=location)


class KeyedIssueTracker(TrackerBase):
    """Trackers addressed by PROJECT-123 keys with per-project site URLs."""

    def extract(self, text: str, settings: TrackerSettings) -> Iterator[IssueFingerprint]:
        for m in ISSUE_KEY_RE.finditer(text):
            fp = self.fingerprint_for_key(m.group(0), settings)
            if fp is not None:
                yield fp

    def fingerprint_for_key(self, key: str, settings: TrackerSettings) -> IssueFingerprint | None:
        m = ISSUE_KEY_RE.fullmatch(key.strip())
        if m is None:
            return None
        project = m.group(1).upper()
        if settings.is_ignored(project):
            return None
        site = settings.site_for(project)
        if not site:
            return None
        return IssueFingerprint(server=site, issue_id=m.group(0).upper())

    def project_of(self, fingerprint: Fingerprint) -> str | None:
        if isinstance(fingerprint, IssueFingerprint):
            return fingerprint.issue_id.rsplit("-", 1)[0]
        return None

    def format(self, fingerprint: Fingerprint, result: LookupResult, *, banner: str | None = None) -> str:
        banner = banner or self.banner
        if isinstance(result, Redirect):
            return format_redirect(banner, result.key, result.location)
        if not isinstance(result, IssueInfo):
            raise TypeError(f"{self.name} cannot format {type(result).__name__}")
        return format_issue(banner, result)


def format_issue(banner: str, info: IssueInfo) -> str:
    """``banner [KEY] summary [status (resolution) type, priority, components, assignee] link``."""
    t = IrcText()
    t.b().append(banner).b().nc().append(" [").fc(GREEN).append(info.key).nc().append("] ")
    t.append(info.summary).append(" [").fc(TEAL)
    t.append(info.status)
    if info.resolution:
        t.append(f" ({info.resolution})")
    if info.kind:
        t.append(" ").append(info.kind)
    t.nc().append(",").fc(ORANGE).append(" ").append(info.priority).nc().append(",")
    if info.components:
        t.fc(BROWN).append(" ").append("/".join(info.components)).nc().append(",")
    t.fc(PURPLE).append(" ").append(info.assignee).nc().append("] ").append(info.link)
    return str(t)
