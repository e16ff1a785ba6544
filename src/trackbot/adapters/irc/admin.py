"""Channel admin commands: ``%leave``, ``%join`` and ``%part``.

``%leave`` is open to anyone in a channel; the bot says goodbye and parts.
``%join`` and ``%part`` take a comma-separated channel list and are only
honoured for senders matching one of the configured ``nick!user@host``
masks, in a channel or in a private message.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

LEAVE_REPLY = "Leaving by user request."

_LEAVE = re.compile(r"%leave")
_JOIN = re.compile(r"%join +([^ ,]+(?:, *[^ ,]+)*)")
_PART = re.compile(r"%part +([^ ,]+(?:, *[^ ,]+)*)")
_LIST_SEP = re.compile(r", *")
_GLOB = re.compile(r"(\*)|(\?)|[^*?]+")
_ANY = re.compile(r".*")


def mask_to_regex(mask: str) -> re.Pattern[str]:
    """``*`` matches any run, ``?`` one character, everything else literally."""
    parts = []
    for m in _GLOB.finditer(mask):
        if m.group(1):
            parts.append(".*")
        elif m.group(2):
            parts.append(".")
        else:
            parts.append(re.escape(m.group()))
    return re.compile("".join(parts))


@dataclass(frozen=True)
class Mask:
    """A ``nick!user@host`` glob. A missing nick or user part matches anyone."""

    nick: re.Pattern[str]
    user: re.Pattern[str]
    host: re.Pattern[str]

    @classmethod
    def parse(cls, mask: str) -> Mask:
        nick_sep = mask.find("!")
        host_sep = mask.find("@", nick_sep + 1)
        nick = _ANY if nick_sep == -1 else mask_to_regex(mask[:nick_sep])
        if host_sep == -1:
            return cls(nick, _ANY, mask_to_regex(mask[nick_sep + 1 :]))
        return cls(nick, mask_to_regex(mask[nick_sep + 1 : host_sep]), mask_to_regex(mask[host_sep + 1 :]))

    def matches(self, nick: str, user: str, host: str) -> bool:
        return bool(self.nick.fullmatch(nick) and self.user.fullmatch(user) and self.host.fullmatch(host))


@dataclass(frozen=True)
class AdminCommand:
    action: Literal["leave", "join", "part"]
    channels: tuple[str, ...]


class AdminCommands:
    """Recognises admin commands and checks the sender against the masks."""

    def __init__(self, masks: Iterable[str] = ()) -> None:
        self._masks = [Mask.parse(m.strip()) for m in masks if m.strip()]

    def __len__(self) -> int:
        return len(self._masks)

    def is_admin(self, nick: str, user: str, host: str) -> bool:
        return any(mask.matches(nick, user, host) for mask in self._masks)

    def parse(
        self,
        message: str,
        *,
        target: str,
        nick: str,
        user: str = "",
        host: str = "",
        is_private: bool = False,
    ) -> AdminCommand | None:
        """Return the command to run, or None when the line is not one this sender may use."""
        text = message.strip()
        if not is_private and _LEAVE.fullmatch(text):
            return AdminCommand("leave", (target,))
        if not self.is_admin(nick, user, host):
            return None
        for action, pattern in (("join", _JOIN), ("part", _PART)):
            m = pattern.fullmatch(text)
            if m:
                return AdminCommand(action, tuple(_LIST_SEP.split(m.group(1))))
        return None
