"""Inbound webhooks: HTTP endpoint and relays to IRC."""

from trackbot.webhooks.relays import GitHubWebhookRelay, JiraWebhookRelay, TeamCityWebhookRelay
from trackbot.webhooks.server import WebhookServer, read_payload

__all__ = ["GitHubWebhookRelay", "JiraWebhookRelay", "TeamCityWebhookRelay", "WebhookServer", "read_payload"]
