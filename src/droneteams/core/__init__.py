"""
Core configuration for drone-teams.

Provides:
- Error hierarchy (DroneTeamsError, ConfigurationError)
- Settings models (Settings, LogsSettings)
- Settings loading from YAML and webhook/status resolution
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field

from droneteams.core.pipeline import PipelineContext


DEFAULT_ACTIVITY_IMAGE = "https://github.com/uchugroup/drone-teams/raw/master/drone.png"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DroneTeamsError(Exception):
    """Base class for plugin errors."""


class ConfigurationError(DroneTeamsError):
    """Settings cannot be resolved into a runnable configuration."""


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class LogsSettings(BaseModel):
    """Failure-log attachment settings."""

    model_config = ConfigDict(frozen=True)

    on_error: bool = False
    auth_token: str = ""

    @property
    def enabled(self) -> bool:
        return self.on_error and bool(self.auth_token)


class Settings(BaseModel):
    """Plugin settings, populated once before execution."""

    model_config = ConfigDict(frozen=True)

    webhook: str = ""
    status: str = ""  # overrides the pipeline status when set
    custom_facts: tuple[str, ...] = ()
    logs: LogsSettings = Field(default_factory=LogsSettings)
    activity_image: str = DEFAULT_ACTIVITY_IMAGE
    timeout: float = 30.0


# ---------------------------------------------------------------------------
# Loading / resolution
# ---------------------------------------------------------------------------


def load_settings(path: Path | str | None = None, **overrides: Any) -> Settings:
    """Load settings from an optional YAML file, then apply overrides.

    Overrides whose value is ``None`` are ignored so that unset CLI flags
    don't clobber values from the file.
    """
    data: dict[str, Any] = {}
    if path:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"settings file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"invalid settings file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"settings file {path} must contain a mapping")

    logs = dict(data.get("logs") or {})
    for key in ("on_error", "auth_token"):
        value = overrides.pop(f"logs_{key}", None)
        if value is not None:
            logs[key] = value
    if logs:
        data["logs"] = logs

    data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)


def branch_webhook_variable(branch: str) -> str:
    """Name of the environment variable holding a branch-specific webhook."""
    return f"{branch}_teams_webhook"


def resolve_settings(
    settings: Settings,
    pipeline: PipelineContext,
    environ: Mapping[str, str],
) -> Settings:
    """Validate settings and return a copy with webhook and status resolved.

    An empty webhook falls back to ``{branch}_teams_webhook`` from the
    environment; an empty status falls back to the pipeline's build status.
    """
    webhook = settings.webhook
    if not webhook:
        webhook = environ.get(branch_webhook_variable(pipeline.build.branch), "")
        if not webhook:
            raise ConfigurationError("no webhook endpoint provided")

    status = settings.status or pipeline.build.status
    return settings.model_copy(update={"webhook": webhook, "status": status})


__all__ = [
    "DEFAULT_ACTIVITY_IMAGE",
    "DroneTeamsError",
    "ConfigurationError",
    "LogsSettings",
    "Settings",
    "PipelineContext",
    "load_settings",
    "branch_webhook_variable",
    "resolve_settings",
]
