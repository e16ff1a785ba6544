"""Test doubles: IRC sink, fake clock and canned tracker HTTP responses."""

from __future__ import annotations

import httpx

from trackbot.events import MessageOut
from trackbot.trackers import LookupClient


class MockIRCAdapter:
    """Captures every MessageOut addressed to IRC."""

    def __init__(self) -> None:
        self.sent_messages: list[MessageOut] = []

    @property
    def name(self) -> str:
        return "irc"

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, MessageOut) and evt.target_origin == "irc"

    def push_event(self, source: str, evt: object) -> None:
        self.sent_messages.append(evt)  # type: ignore[arg-type]

    def clear(self) -> None:
        self.sent_messages.clear()


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTrackerHTTP:
    """httpx MockTransport handler serving canned bodies by URL path.

    ``fail`` makes every request time out; ``calls`` records requested URLs.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes, dict[str, str]]] = {}
        self.calls: list[httpx.URL] = []
        self.fail = False

    def add(self, path: str, body: bytes = b"", *, status: int = 200, headers: dict[str, str] | None = None) -> None:
        self.routes[path] = (status, body, headers or {})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url)
        if self.fail:
            raise httpx.ReadTimeout("timed out", request=request)
        key = request.url.path
        if request.url.params.get("id"):
            key = f"{key}?id={request.url.params['id']}"
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, text="not found")
        status, body, headers = route
        return httpx.Response(status, content=body, headers=headers)

    def client(self) -> LookupClient:
        return LookupClient(transport=httpx.MockTransport(self))


def bugzilla_xml(bug_id: str, summary: str = "Server fails to boot", product: str = "WildFly") -> bytes:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<bugzilla version="5.0">
  <bug>
    <bug_id>{bug_id}</bug_id>
    <short_desc>{summary}</short_desc>
    <product>{product}</product>
    <bug_status>NEW</bug_status>
    <cf_type>Bug</cf_type>
    <bug_severity>high</bug_severity>
    <assigned_to name="Jane Doe">jdoe@example.com</assigned_to>
  </bug>
</bugzilla>""".encode()


def jira_xml(key: str, summary: str = "Boot fails", server: str = "https://issues.redhat.com/") -> bytes:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="0.92">
  <channel>
    <item>
      <title>[{key}] {summary}</title>
      <link>{server}browse/{key}</link>
      <key id="1">{key}</key>
      <summary>{summary}</summary>
      <type>Bug</type>
      <priority>Major</priority>
      <status>Open</status>
      <resolution>Unresolved</resolution>
      <assignee username="jdoe">Jane Doe</assignee>
      <component>Server</component>
    </item>
  </channel>
</rss>""".encode()


class EventCollector:
    """Captures bus events of the given types."""

    def __init__(self, *types: type) -> None:
        self.types = types
        self.events: list[object] = []

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, self.types)

    def push_event(self, source: str, evt: object) -> None:
        self.events.append(evt)
