"""Tests for fingerprint value semantics."""

from __future__ import annotations

import pytest
from trackbot.dedupe import CommitFingerprint, IssueFingerprint


class TestIssueFingerprint:
    def test_equal_components_are_equal(self):
        a = IssueFingerprint("https://bugzilla.redhat.com", "1234")
        b = IssueFingerprint("https://bugzilla.redhat.com", "1234")
        assert a == b
        assert hash(a) == hash(b)

    def test_different_server_differs(self):
        a = IssueFingerprint("https://bugzilla.redhat.com", "1234")
        b = IssueFingerprint("https://bugzilla.mozilla.org", "1234")
        assert a != b

    def test_usable_as_dict_key(self):
        seen = {IssueFingerprint("https://issues.example.com/", "WFLY-1"): "x"}
        assert seen[IssueFingerprint("https://issues.example.com/", "WFLY-1")] == "x"

    def test_rejects_none(self):
        with pytest.raises(TypeError):
            IssueFingerprint(None, "1")  # type: ignore[arg-type]

    def test_immutable(self):
        fp = IssueFingerprint("s", "1")
        with pytest.raises(AttributeError):
            fp.issue_id = "2"  # type: ignore[misc]


class TestCommitFingerprint:
    def test_kind_distinguishes_commit_from_pull_request(self):
        commit = CommitFingerprint("wildfly", "wildfly", "1234", "commit")
        pull = CommitFingerprint("wildfly", "wildfly", "1234", "pull_request")
        assert commit != pull

    def test_never_equal_to_issue_fingerprint(self):
        assert CommitFingerprint("a", "b", "c") != IssueFingerprint("a", "b")

    def test_str(self):
        assert str(CommitFingerprint("wildfly", "wildfly-core", "42", "pull_request")) == "wildfly/wildfly-core#42"
        assert str(CommitFingerprint("wildfly", "wildfly", "abc123")) == "wildfly/wildfly@abc123"

    def test_rejects_none_ref(self):
        with pytest.raises(TypeError):
            CommitFingerprint("wildfly", "wildfly", None)  # type: ignore[arg-type]
