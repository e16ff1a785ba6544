"""Split outbound text into IRC-sized lines."""

from __future__ import annotations


def _utf8_cut(data: bytes, limit: int) -> int:
    """Largest offset <= limit that does not fall inside a UTF-8 sequence."""
    cut = min(limit, len(data))
    while 0 < cut < len(data) and (data[cut] & 0xC0) == 0x80:
        cut -= 1
    return cut


def _split_line(line: str, max_bytes: int) -> list[str]:
    data = line.encode("utf-8")
    chunks: list[str] = []
    while len(data) > max_bytes:
        cut = _utf8_cut(data, max_bytes)
        if cut == 0:
            # max_bytes smaller than one character: emit that character alone
            cut = 1
            while cut < len(data) and (data[cut] & 0xC0) == 0x80:
                cut += 1
        # Prefer a word boundary in the back half of the chunk
        space = data.rfind(b" ", 0, cut)
        if space > max_bytes // 2:
            cut = space + 1
        chunks.append(data[:cut].decode("utf-8").rstrip(" "))
        data = data[cut:]
    if data:
        chunks.append(data.decode("utf-8"))
    return chunks


def split_irc_message(content: str, max_bytes: int = 450) -> list[str]:
    """Split content into lines of at most max_bytes UTF-8 bytes.

    IRC lines are limited to 512 bytes including "PRIVMSG #channel :" and CRLF;
    450 leaves room for the prefix. Embedded newlines always start a new line
    and blank lines are dropped.
    """
    chunks: list[str] = []
    for line in content.splitlines():
        if line.strip():
            chunks.extend(_split_line(line, max_bytes))
    return chunks
