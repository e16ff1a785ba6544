"""TeamCity: build notices from webhook payloads (no lookups)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from trackbot.core.errors import WebhookPayloadError
from trackbot.formatting.irc_format import LIME, TEAL, IrcText


@dataclass(frozen=True)
class BuildNotice:
    project_id: str
    project_name: str
    message: str
    branch: str | None = None


def parse_build(payload: dict[str, Any]) -> BuildNotice:
    """Read the ``build`` object of a TeamCity webhook body."""
    build = payload.get("build")
    if not isinstance(build, dict):
        raise WebhookPayloadError("teamcity: payload has no build object", code="missing_build")
    missing = [k for k in ("projectId", "projectName", "message") if not build.get(k)]
    if missing:
        raise WebhookPayloadError(
            f"teamcity: build is missing {', '.join(missing)}",
            code="missing_field",
            details={"fields": missing},
        )
    branch = build.get("branchName")
    return BuildNotice(
        project_id=str(build["projectId"]),
        project_name=str(build["projectName"]),
        message=str(build["message"]),
        branch=str(branch) if branch else None,
    )


def format_build(notice: BuildNotice) -> str:
    """``teamcity [project] (branch) message``."""
    t = IrcText()
    t.b().append("teamcity").b().nc().append(" [").fc(LIME).append(notice.project_name).nc().append("] ")
    if notice.branch:
        t.append("(").fc(TEAL).append(notice.branch).nc().append(") ")
    t.append(notice.message)
    return str(t)
