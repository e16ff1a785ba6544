"""Tests for admin masks and %leave / %join / %part parsing."""

from __future__ import annotations

import pytest

from trackbot.adapters.irc.admin import AdminCommand, AdminCommands, Mask, mask_to_regex

# ---------------------------------------------------------------------------
# Masks
# ---------------------------------------------------------------------------


class TestMask:
    @pytest.mark.parametrize(
        ("mask", "who", "expected"),
        [
            ("*!*@*.redhat.com", ("dmlloyd", "dml", "office.redhat.com"), True),
            ("*!*@*.redhat.com", ("dmlloyd", "dml", "redhat.com.evil.org"), False),
            ("dmlloyd!*@*", ("dmlloyd", "x", "y"), True),
            ("dmlloyd!*@*", ("dmlloyd_", "x", "y"), False),
            ("jdoe?!*@*", ("jdoe1", "x", "y"), True),
            ("jdoe?!*@*", ("jdoe", "x", "y"), False),
            # No "!" means any nick; no "@" means any user
            ("*.redhat.com", ("anyone", "anything", "a.redhat.com"), True),
            ("*@host.org", ("anyone", "u", "host.org"), True),
        ],
    )
    def test_matches(self, mask, who, expected):
        assert Mask.parse(mask).matches(*who) is expected

    def test_regex_characters_are_literal(self):
        pattern = mask_to_regex("a.b[1]+")

        assert pattern.fullmatch("a.b[1]+")
        assert not pattern.fullmatch("axb1")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestAdminCommands:
    admins = AdminCommands(["*!*@*.redhat.com", ""])

    def _parse(self, message: str, nick: str = "dmlloyd", host: str = "office.redhat.com", **kwargs):
        kwargs.setdefault("target", "#wildfly")
        return self.admins.parse(message, nick=nick, user="dml", host=host, **kwargs)

    def test_blank_masks_skipped(self):
        assert len(self.admins) == 1

    def test_leave_open_to_anyone(self):
        assert self._parse("  %leave ", host="example.org") == AdminCommand("leave", ("#wildfly",))

    def test_leave_ignored_in_private(self):
        assert self._parse("%leave", target="trackbot", is_private=True) is None

    def test_leave_must_be_whole_line(self):
        assert self._parse("%leave now") is None

    def test_join_splits_comma_list(self):
        assert self._parse("%join #a,#b,  #c") == AdminCommand("join", ("#a", "#b", "#c"))

    def test_part_in_private(self):
        command = self._parse("%part #old", target="trackbot", is_private=True)

        assert command == AdminCommand("part", ("#old",))

    def test_join_requires_admin(self):
        assert self._parse("%join #a", host="example.org") is None

    def test_join_without_channels_ignored(self):
        assert self._parse("%join") is None
        assert self._parse("%join #a #b") is None

    def test_no_masks_means_no_admins(self):
        assert AdminCommands().parse("%join #a", target="#x", nick="n", user="u", host="h") is None
