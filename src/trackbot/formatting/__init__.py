"""IRC text formatting helpers."""

from trackbot.formatting.irc_format import IrcText, strip_formatting
from trackbot.formatting.irc_message_split import split_irc_message

__all__ = ["IrcText", "split_irc_message", "strip_formatting"]
