"""Trackbot domain exceptions."""

from __future__ import annotations


class TrackbotError(Exception):
    """Base for trackbot domain errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class TrackbotConfigurationError(TrackbotError):
    """Config validation or load failure."""


class TrackerLookupError(TrackbotError):
    """Tracker answered, but the response could not be turned into issue info."""


class WebhookPayloadError(TrackbotError):
    """Webhook body is missing, malformed, or lacks required fields."""
