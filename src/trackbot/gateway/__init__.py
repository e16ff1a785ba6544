"""Gateway: bus, target resolution and notification dispatch."""

from trackbot.gateway.bus import Bus
from trackbot.gateway.notifier import Delivery, NotificationDispatcher, Outcome
from trackbot.gateway.router import ProjectRoute, TargetResolver

__all__ = ["Bus", "Delivery", "NotificationDispatcher", "Outcome", "ProjectRoute", "TargetResolver"]
