"""Transport adapters."""

from trackbot.adapters.base import AdapterBase
from trackbot.adapters.irc import IRCAdapter

__all__ = ["AdapterBase", "IRCAdapter"]
