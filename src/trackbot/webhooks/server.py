"""Webhook HTTP endpoint: parses deliveries and publishes WebhookIn on the bus."""

from __future__ import annotations

import json
from typing import Any

from aiohttp import web
from loguru import logger

from trackbot.core.errors import WebhookPayloadError
from trackbot.events import webhook_in
from trackbot.gateway import Bus


async def read_payload(request: web.Request) -> dict[str, Any]:
    """JSON body, or form-encoded body whose ``payload`` field holds JSON."""
    if request.content_type == "application/x-www-form-urlencoded":
        form = await request.post()
        raw = form.get("payload")
        if not isinstance(raw, str) or not raw:
            raise WebhookPayloadError("form body has no payload field", code="missing_payload")
    else:
        raw = await request.text()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise WebhookPayloadError("payload is not valid JSON", code="invalid_json", original_error=exc) from exc
    if not isinstance(data, dict):
        raise WebhookPayloadError("payload must be a JSON object", code="invalid_payload")
    return data


class WebhookServer:
    """aiohttp application serving GitHub, JIRA and TeamCity webhooks."""

    def __init__(self, bus: Bus, *, host: str = "0.0.0.0", port: int = 8080, path_prefix: str = "/trackbot") -> None:
        self._bus = bus
        self._host = host
        self._port = port
        self._prefix = path_prefix.rstrip("/")
        self._runner: web.AppRunner | None = None

    @property
    def name(self) -> str:
        return "webhooks"

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(f"{self._prefix}/github/{{channel}}", self._github)
        app.router.add_post(f"{self._prefix}/jira", self._jira)
        app.router.add_post(f"{self._prefix}/teamcity", self._teamcity)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info("Webhook server listening on {}:{}{}", self._host, self._port, self._prefix)

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def _accept(
        self, request: web.Request, kind: str, event_type: str, channel: str | None = None
    ) -> web.Response:
        try:
            payload = await read_payload(request)
        except WebhookPayloadError as exc:
            logger.warning("Webhook {}: rejected body from {}: {}", kind, request.remote, exc)
            return web.json_response({"error": str(exc), "code": exc.code}, status=400)
        _, evt = webhook_in(kind, event_type, payload, channel=channel, query=dict(request.query))
        logger.info("Webhook {}: {} event{}", kind, event_type, f" for {channel}" if channel else "")
        self._bus.publish(self.name, evt)
        return web.json_response({"ok": True})

    async def _github(self, request: web.Request) -> web.Response:
        if "github" not in request.headers.get("User-Agent", "").lower():
            logger.warning("Webhook github: request from {} without GitHub User-Agent", request.remote)
            return web.json_response({"error": "not a GitHub delivery"}, status=403)
        channel = request.match_info["channel"]
        if not channel.startswith("#"):
            channel = f"#{channel}"
        event_type = request.headers.get("X-GitHub-Event", "")
        return await self._accept(request, "github", event_type, channel)

    async def _jira(self, request: web.Request) -> web.Response:
        return await self._accept(request, "jira", request.query.get("event", ""))

    async def _teamcity(self, request: web.Request) -> web.Response:
        return await self._accept(request, "teamcity", "build")
