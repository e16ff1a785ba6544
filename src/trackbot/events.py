"""Event types and dispatcher."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger

from trackbot.dedupe.scope import RecursionScope


@dataclass
class MessageIn:
    """Inbound chat line: channel message, private message or /me action."""

    origin: str  # "irc"
    target: str  # channel, or our own nick for private messages
    sender: str
    content: str
    is_private: bool = False
    is_action: bool = False
    scope: RecursionScope = field(default_factory=RecursionScope, compare=False, repr=False)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def reply_to(self) -> str:
        """Where an answer goes: the channel, or the sender of a private message."""
        return self.sender if self.is_private else self.target


@dataclass
class MessageOut:
    """Outbound line to one or more IRC targets."""

    target_origin: str  # "irc"
    targets: list[str]
    content: str
    source: str = ""  # tracker or relay that produced it
    scope: RecursionScope = field(default_factory=RecursionScope, compare=False, repr=False)
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookIn:
    """Parsed webhook delivery."""

    kind: str  # "github" | "jira" | "teamcity"
    event_type: str
    payload: dict[str, Any]
    channel: str | None = None
    query: dict[str, str] = field(default_factory=dict)


@dataclass
class ExternalNotice:
    """Tracker-originated notice for one key (e.g. JIRA issue created)."""

    tracker: str
    key: str
    scope: RecursionScope = field(default_factory=RecursionScope, compare=False, repr=False)


@dataclass
class ConfigReload:
    """Config was reloaded (e.g. SIGHUP)."""

    pass


class EventTarget(Protocol):
    """Bus target interface: accept_event + push_event."""

    def accept_event(self, source: str, evt: object) -> bool:
        """Return True if this target wants the event."""
        ...

    def push_event(self, source: str, evt: object) -> None:
        """Handle the event (may be async via task or queue)."""
        ...


def event(type_name: str):
    """Decorator to mark a factory as producing an event with a given type."""

    def decorator(f: Any) -> Any:
        @functools.wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> tuple[str, object]:
            evt = f(*args, **kwargs)
            return (type_name, evt)

        wrapper.TYPE = type_name  # type: ignore[attr-defined]
        return wrapper

    return decorator


@event("message_in")
def message_in(
    origin: str,
    target: str,
    sender: str,
    content: str,
    *,
    is_private: bool = False,
    is_action: bool = False,
    scope: RecursionScope | None = None,
    raw: dict[str, Any] | None = None,
) -> MessageIn:
    return MessageIn(
        origin=origin,
        target=target,
        sender=sender,
        content=content,
        is_private=is_private,
        is_action=is_action,
        scope=RecursionScope() if scope is None else scope,
        raw=raw or {},
    )


@event("message_out")
def message_out(
    target_origin: str,
    targets: list[str],
    content: str,
    *,
    source: str = "",
    scope: RecursionScope | None = None,
    raw: dict[str, Any] | None = None,
) -> MessageOut:
    return MessageOut(
        target_origin=target_origin,
        targets=list(targets),
        content=content,
        source=source,
        scope=RecursionScope() if scope is None else scope,
        raw=raw or {},
    )


@event("webhook_in")
def webhook_in(
    kind: str,
    event_type: str,
    payload: dict[str, Any],
    *,
    channel: str | None = None,
    query: dict[str, str] | None = None,
) -> WebhookIn:
    return WebhookIn(kind=kind, event_type=event_type, payload=payload, channel=channel, query=query or {})


@event("external_notice")
def external_notice(tracker: str, key: str, *, scope: RecursionScope | None = None) -> ExternalNotice:
    return ExternalNotice(tracker=tracker, key=key, scope=RecursionScope() if scope is None else scope)


@event("config_reload")
def config_reload() -> ConfigReload:
    return ConfigReload()


class Dispatcher:
    """Central event dispatcher; targets filter by type and receive events."""

    def __init__(self) -> None:
        self._targets: list[EventTarget] = []

    def register(self, target: EventTarget) -> None:
        self._targets.append(target)

    def unregister(self, target: EventTarget) -> None:
        if target in self._targets:
            self._targets.remove(target)

    def dispatch(self, source: str, evt: object) -> None:
        """Dispatch event to all targets that accept it."""
        for target in list(self._targets):
            try:
                if target.accept_event(source, evt):
                    target.push_event(source, evt)
            except Exception as exc:
                logger.exception("Failed to pass event to target {}: {}", target, exc)
