"""
Plugin — validate settings, build the card, deliver it.

One httpx client is opened per execution and shared by the log fetcher
and the dispatcher. Calls are awaited one after another.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Mapping, Optional

import httpx

from droneteams.core import Settings, resolve_settings
from droneteams.core.pipeline import PipelineContext
from droneteams.notifications.builder import build_card
from droneteams.notifications.card import MessageCard
from droneteams.notifications.dispatcher import TeamsDispatcher
from droneteams.notifications.logs import BuildLogFetcher

logger = logging.getLogger(__name__)


class Plugin:
    """Drone Teams notification plugin."""

    def __init__(
        self,
        settings: Settings,
        pipeline: PipelineContext,
        *,
        environ: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.pipeline = pipeline
        self.environ = os.environ if environ is None else environ
        self._transport = transport

    def validate(self) -> Settings:
        """Resolve webhook and status; raises ConfigurationError."""
        self.settings = resolve_settings(self.settings, self.pipeline, self.environ)
        return self.settings

    async def execute(self, now: Optional[datetime] = None) -> MessageCard:
        """Build and deliver the card; raises DeliveryError."""
        async with httpx.AsyncClient(
            timeout=self.settings.timeout, transport=self._transport
        ) as client:
            fetcher = BuildLogFetcher(client, self.settings.logs.auth_token)
            card = await build_card(
                self.pipeline,
                self.settings,
                fetch_logs=fetcher,
                commit_link_override=self.environ.get("DRONE_COMMIT_LINK"),
                now=now,
            )
            logger.info("Generated card: %s", card.to_payload())

            await TeamsDispatcher(self.settings.webhook, client).send(card)
        return card

    async def run(self, now: Optional[datetime] = None) -> MessageCard:
        self.validate()
        return await self.execute(now=now)
