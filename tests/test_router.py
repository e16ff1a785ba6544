"""Test target resolution for replies and project notices."""

from trackbot.events import external_notice, message_in, message_out
from trackbot.gateway.router import TargetResolver


def _resolver() -> TargetResolver:
    resolver = TargetResolver()
    resolver.load_from_config(
        {
            "irc_channels": ["#wildfly", "#wildfly-dev"],
            "trackers": {
                "jira": {
                    "channels": ["#jira"],
                    "projects": {
                        "wfly": {"channels": ["#wildfly-dev"]},
                        "WFCORE": {"channels": ["*", "#core"]},
                        "BROKEN": "nope",
                    },
                },
                "teamcity": {"projects": {"WildFly_Build": {"channels": ["#ci"]}}},
                "bugzilla": None,
            },
        }
    )
    return resolver


class TestTargetResolver:
    """Project routes and reply targets."""

    def test_load_empty_config(self):
        resolver = TargetResolver()
        resolver.load_from_config({})
        assert resolver.all_routes() == []
        assert resolver.project_targets("jira", "WFLY") == []

    def test_project_route(self):
        assert _resolver().project_targets("jira", "WFLY") == ["#wildfly-dev"]

    def test_project_keys_case_insensitive(self):
        assert _resolver().project_targets("jira", "wfly") == ["#wildfly-dev"]

    def test_broadcast_expands_without_duplicates(self):
        targets = _resolver().project_targets("jira", "WFCORE")
        assert targets == ["#wildfly", "#wildfly-dev", "#core"]

    def test_tracker_default(self):
        assert _resolver().project_targets("jira", "UNKNOWN") == ["#jira"]
        assert _resolver().project_targets("jira", None) == ["#jira"]

    def test_unmapped_tracker(self):
        assert _resolver().project_targets("youtrack", "IDEA") == []

    def test_teamcity_project(self):
        assert _resolver().project_targets("teamcity", "WildFly_Build") == ["#ci"]

    def test_invalid_entries_ignored(self):
        routes = _resolver().all_routes()
        assert {(r.tracker, r.project) for r in routes} == {
            ("jira", None),
            ("jira", "WFLY"),
            ("jira", "WFCORE"),
            ("teamcity", "WILDFLY_BUILD"),
        }

    def test_reload_replaces_routes(self):
        resolver = _resolver()
        resolver.load_from_config({"trackers": {}})
        assert resolver.all_routes() == []

    def test_reply_to_channel(self):
        _, evt = message_in("irc", "#wildfly", "alice", "WFLY-1")
        assert _resolver().reply_targets(evt) == ["#wildfly"]

    def test_reply_to_private_sender(self):
        _, evt = message_in("irc", "trackbot", "alice", "WFLY-1", is_private=True)
        assert _resolver().reply_targets(evt) == ["alice"]

    def test_reply_to_outbound_targets(self):
        _, evt = message_out("irc", ["#a", "#b"], "line")
        assert _resolver().reply_targets(evt) == ["#a", "#b"]

    def test_notice_has_no_reply_target(self):
        _, evt = external_notice("jira", "WFLY-1")
        assert _resolver().reply_targets(evt) == []
