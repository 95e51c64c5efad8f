"""
BuildLogFetcher — pulls failed step logs from the Drone REST API.

Consulted only when a build failed and log attachment is enabled. Each
failing step becomes one card fact holding the step's commands and output.
Any HTTP or decoding problem aborts the whole fetch with LogFetchError so
the card never carries a partial log set.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from droneteams.core import DroneTeamsError
from droneteams.core.pipeline import PipelineContext
from droneteams.notifications.card import Fact

logger = logging.getLogger(__name__)


class LogFetchError(DroneTeamsError):
    """Failed to retrieve or decode build logs."""


# ---------------------------------------------------------------------------
# API documents
# ---------------------------------------------------------------------------


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null fields fall back to their zero value
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class BuildStep(_ApiModel):
    number: int = 0
    name: str = ""
    status: str = ""
    exit_code: int = 0


class BuildStage(_ApiModel):
    number: int = 0
    name: str = ""
    status: str = ""
    exit_code: int = 0
    steps: list[BuildStep] = Field(default_factory=list)


class BuildInfo(_ApiModel):
    number: int = 0
    status: str = ""
    stages: list[BuildStage] = Field(default_factory=list)


class BuildLog(_ApiModel):
    proc: str = ""
    pos: int = 0
    out: str = ""


_BUILD_LOGS = TypeAdapter(list[BuildLog])


def render_logs(logs: list[BuildLog]) -> str:
    return "\n".join(
        f"Command #{entry.pos}: {entry.proc}\nResult: {entry.out}" for entry in logs
    )


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class BuildLogFetcher:
    """Drone API client for failed-step logs, sharing one HTTP client."""

    def __init__(self, client: httpx.AsyncClient, auth_token: str) -> None:
        self._client = client
        self.auth_token = auth_token

    async def __call__(self, pipeline: PipelineContext) -> list[Fact]:
        return await self.fetch(pipeline)

    async def fetch(self, pipeline: PipelineContext) -> list[Fact]:
        """Return one fact per failed step, or an empty list."""
        if not pipeline.build.failed_steps:
            return []

        base = (
            f"https://{pipeline.system.host}/api/repos/"
            f"{pipeline.repo.owner}/{pipeline.repo.name}/builds/{pipeline.build.number}"
        )

        data = await self._get_json(base, "build info")
        try:
            info = BuildInfo.model_validate(data)
        except ValidationError as exc:
            logger.error("Failed to parse build info from %s", base)
            raise LogFetchError(f"invalid build info: {exc}") from exc

        if info.status == "success":
            return []

        facts: list[Fact] = []
        for stage in info.stages:
            if stage.status == "success":
                continue
            for step in stage.steps:
                if step.exit_code == 0:
                    continue
                # TODO: second segment should be step.number (Drone routes step
                # logs as /logs/{stage}/{step}).
                url = f"{base}/logs/{stage.number}/{stage.number}"
                what = (
                    f"log for {pipeline.repo.owner}/{pipeline.repo.name} build "
                    f"{pipeline.build.number} stage {stage.name} step {step.name}"
                )
                data = await self._get_json(url, what)
                try:
                    entries = _BUILD_LOGS.validate_python(data if data is not None else [])
                except ValidationError as exc:
                    logger.error("Failed to parse %s", what)
                    raise LogFetchError(f"invalid {what}: {exc}") from exc

                facts.append(Fact(
                    name=f"Log for {stage.name}/{step.name}",
                    value=render_logs(entries),
                ))

        return facts

    async def _get_json(self, url: str, what: str) -> Any:
        headers = {"Authorization": f"Bearer {self.auth_token}"}
        try:
            resp = await self._client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Failed to get %s from %s", what, url)
            raise LogFetchError(f"request for {what} failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.error(
                "Failed to get %s from %s with status %s", what, url, resp.status_code
            )
            raise LogFetchError(f"server error {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            logger.error("Failed to read %s", what)
            raise LogFetchError(f"unreadable {what}: {exc}") from exc
