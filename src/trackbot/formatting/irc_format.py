"""IRC control-code builder and stripper (mIRC bold/colour conventions)."""

from __future__ import annotations

import re

BOLD = "\x02"
COLOR = "\x03"
RESET = "\x0f"
REVERSE = "\x16"
ITALIC = "\x1d"
UNDERLINE = "\x1f"

# mIRC colour numbers used by the notice formats
WHITE, BLACK, NAVY, GREEN, RED, BROWN, PURPLE, ORANGE = range(8)
YELLOW, LIME, TEAL, CYAN, BLUE, PINK, GREY, SILVER = range(8, 16)

_FORMAT_RE = re.compile(r"\x03(?:\d{1,2}(?:,\d{1,2})?)?|[\x02\x0f\x16\x1d\x1f]")


def strip_formatting(text: str) -> str:
    """Remove bold, colour, reset, reverse, italic and underline codes."""
    return _FORMAT_RE.sub("", text)


def _color(n: int) -> str:
    if not 0 <= n <= 15:
        raise ValueError(f"IRC colour out of range: {n}")
    return f"{n:02d}"


class IrcText:
    """Chainable builder for one formatted IRC line.

    Colours are always written with two digits so text starting with a digit
    cannot be swallowed into the colour code.
    """

    def __init__(self, text: str = "") -> None:
        self._parts: list[str] = [text] if text else []

    def append(self, value: object) -> IrcText:
        self._parts.append(str(value))
        return self

    def b(self) -> IrcText:
        """Toggle bold."""
        self._parts.append(BOLD)
        return self

    def i(self) -> IrcText:
        self._parts.append(ITALIC)
        return self

    def u(self) -> IrcText:
        self._parts.append(UNDERLINE)
        return self

    def fc(self, color: int) -> IrcText:
        """Set foreground colour."""
        self._parts.append(COLOR + _color(color))
        return self

    def bc(self, color: int) -> IrcText:
        """Set background colour. A foreground must come first, so black is written."""
        self._parts.append(f"{COLOR}{_color(BLACK)},{_color(color)}")
        return self

    def c(self, fg: int, bg: int) -> IrcText:
        self._parts.append(f"{COLOR}{_color(fg)},{_color(bg)}")
        return self

    def nc(self) -> IrcText:
        """Reset all formatting."""
        self._parts.append(RESET)
        return self

    def clear(self) -> IrcText:
        self._parts.clear()
        return self

    def __len__(self) -> int:
        return len(str(self))

    def __str__(self) -> str:
        return "".join(self._parts)
