"""IRC adapter package."""

from trackbot.adapters.irc.adapter import IRCAdapter
from trackbot.adapters.irc.admin import AdminCommands, Mask
from trackbot.adapters.irc.client import _MAX_ATTEMPTS, IRCClient, _connect_with_backoff
from trackbot.adapters.irc.throttle import TokenBucket

__all__ = ["_MAX_ATTEMPTS", "AdminCommands", "IRCAdapter", "IRCClient", "Mask", "TokenBucket", "_connect_with_backoff"]
