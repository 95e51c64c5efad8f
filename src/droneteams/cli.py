"""
CLI — the drone-teams plugin entry point.

Every option can also be given through its ``PLUGIN_*`` environment
variable, which is how Drone passes ``settings:`` to plugin containers.
Pipeline metadata comes from the ``DRONE_*`` variables.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from droneteams import __version__

console = Console(stderr=True)


class CommaSeparatedString(click.types.StringParamType):
    """String type whose environment variable is a comma separated list."""

    name = "text"
    envvar_list_splitter = ","


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.command()
@click.version_option(version=__version__)
@click.option("--webhook", envvar="PLUGIN_WEBHOOK", default=None, help="MS teams connector webhook endpoint")
@click.option("--status", envvar="PLUGIN_STATUS", default=None, help="Overwrite the status value")
@click.option(
    "--facts",
    type=CommaSeparatedString(),
    envvar="PLUGIN_FACTS",
    multiple=True,
    help="Add custom facts to the card (name:value)",
)
@click.option(
    "--logs-on-error/--no-logs-on-error",
    envvar="PLUGIN_LOGS_ON_ERROR",
    default=None,
    help="Display logs on error",
)
@click.option("--logs-auth-token", envvar="PLUGIN_LOGS_AUTH_TOKEN", default=None, help="Auth token to read the logs")
@click.option(
    "--settings-file",
    envvar="PLUGIN_SETTINGS_FILE",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML file with default settings",
)
@click.option(
    "--log-level",
    envvar="PLUGIN_LOG_LEVEL",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
)
def main(webhook, status, facts, logs_on_error, logs_auth_token, settings_file, log_level) -> None:
    """Send a Microsoft Teams card for the current Drone build."""
    from droneteams.core import DroneTeamsError, load_settings
    from droneteams.core.pipeline import PipelineContext
    from droneteams.plugin import Plugin

    _setup_logging(log_level)

    try:
        settings = load_settings(
            settings_file,
            webhook=webhook,
            status=status,
            custom_facts=[f.strip() for f in facts if f.strip()] or None,
            logs_on_error=logs_on_error,
            logs_auth_token=logs_auth_token,
        )
        pipeline = PipelineContext.from_environ(os.environ)
    except (ValueError, ValidationError) as exc:
        console.print(f"[red]Error: invalid plugin configuration: {exc}[/red]")
        sys.exit(1)
    except DroneTeamsError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    plugin = Plugin(settings, pipeline)
    try:
        plugin.validate()
        asyncio.run(plugin.execute())
    except DroneTeamsError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    console.print("[green]>[/green] Notification sent")
