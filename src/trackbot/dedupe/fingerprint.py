"""Identity of a referenced issue, commit or pull request."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Literal, Union

CommitKind = Literal["commit", "pull_request"]


class _NonNullFields:
    def __post_init__(self) -> None:
        for f in fields(self):  # type: ignore[arg-type]
            if getattr(self, f.name) is None:
                raise TypeError(f"{type(self).__name__}.{f.name} must not be None")


@dataclass(frozen=True)
class IssueFingerprint(_NonNullFields):
    """Bugzilla bug, JIRA or YouTrack issue on a given server."""

    server: str
    issue_id: str

    def __str__(self) -> str:
        return f"{self.issue_id}@{self.server}"


@dataclass(frozen=True)
class CommitFingerprint(_NonNullFields):
    """GitHub commit (ref = sha) or pull request (ref = number)."""

    org: str
    repo: str
    ref: str
    kind: CommitKind = "commit"

    def __str__(self) -> str:
        sep = "#" if self.kind == "pull_request" else "@"
        return f"{self.org}/{self.repo}{sep}{self.ref}"


Fingerprint = Union[IssueFingerprint, CommitFingerprint]
