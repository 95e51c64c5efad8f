"""
Teams webhook dispatcher — POST the rendered card once.

There is no retry: a transport failure is reported as DeliveryError and
ends the run.
"""

from __future__ import annotations

import json
import logging

import httpx

from droneteams.core import DroneTeamsError
from droneteams.notifications.card import MessageCard

logger = logging.getLogger(__name__)


class DeliveryError(DroneTeamsError):
    """The card could not be delivered to the webhook."""


class TeamsDispatcher:
    """Delivers MessageCards to a Teams incoming webhook."""

    def __init__(self, webhook_url: str, client: httpx.AsyncClient) -> None:
        self.webhook_url = webhook_url
        self._client = client

    async def send(self, card: MessageCard) -> httpx.Response:
        body = json.dumps(card.to_payload())
        try:
            resp = await self._client.post(
                self.webhook_url,
                content=body,
                headers={"Content-Type": "application/json"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.exception("Failed to send request to teams webhook")
            raise DeliveryError(f"delivery to {self.webhook_url} failed: {exc}") from exc

        if not resp.is_success:
            logger.warning(
                "Teams webhook answered %s: %s", resp.status_code, resp.text[:200]
            )
        return resp
