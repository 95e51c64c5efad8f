"""
Card builder — turns pipeline state into a Teams MessageCard.

The only side effect is the optional failure-log lookup, which is injected
as a coroutine function so the builder can be exercised without a network.
Enrichment never aborts card assembly: malformed custom facts are skipped
and log lookup failures are logged and dropped.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from droneteams.core import Settings
from droneteams.core.pipeline import PipelineContext
from droneteams.notifications.card import (
    Action,
    Fact,
    MessageCard,
    Section,
    ThemeColor,
)

logger = logging.getLogger(__name__)

LogFetcher = Callable[[PipelineContext], Awaitable[list[Fact]]]

DIFF_EVENTS = ("push", "pull_request")


def format_duration(elapsed: timedelta) -> str:
    """Round to whole seconds and render like Go's ``time.Duration`` (``2m5s``)."""
    seconds = elapsed.total_seconds()
    # half away from zero
    total = int(math.floor(abs(seconds) + 0.5))
    if total == 0:
        return "0s"

    sign = "-" if seconds < 0 else ""
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def parse_custom_fact(raw: str) -> Optional[Fact]:
    """Split ``"name:value"`` on the first colon; None when there is none."""
    name, sep, value = raw.partition(":")
    if not sep:
        return None
    return Fact(name=name, value=value)


def effective_status(pipeline: PipelineContext, settings: Settings) -> str:
    return settings.status or pipeline.build.status


async def build_card(
    pipeline: PipelineContext,
    settings: Settings,
    *,
    fetch_logs: Optional[LogFetcher] = None,
    commit_link_override: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MessageCard:
    """Assemble the notification card for one pipeline run."""
    status = effective_status(pipeline, settings)
    build = pipeline.build
    commit = pipeline.commit
    repo = pipeline.repo

    facts = [
        Fact(name="Build Number", value=str(build.number)),
        Fact(
            name="Git Author",
            value=f'{commit.author.name} "{commit.author.email}" ({commit.author.username})',
        ),
    ]
    if commit.message:
        facts.append(Fact(name="Commit Message", value=commit.message))

    for raw in settings.custom_facts:
        fact = parse_custom_fact(raw)
        if fact is None:
            logger.debug("Skipping custom fact without a colon: %r", raw)
            continue
        facts.append(fact)

    actions = [Action.open_uri("Open repository", repo.link)]

    if build.event in DIFF_EVENTS:
        link = commit.link or commit_link_override or ""
        if link:
            actions.append(Action.open_uri("Open commit diff", link))
    elif build.event == "tag":
        actions.append(Action.open_uri("Open tag list", f"{repo.link}/tags"))

    if status == "failure":
        facts.append(Fact(name="Failed Build Steps", value=" ".join(build.failed_steps)))

        if settings.logs.enabled and fetch_logs is not None:
            facts.extend(await _collect_logs(fetch_logs, pipeline))

        actions.append(Action.open_uri(
            "Open build pipeline",
            f"{pipeline.system.proto}://{pipeline.system.host}/{repo.slug}/{build.number}",
        ))

    now = now or datetime.now(timezone.utc)
    created = build.created
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    elapsed = format_duration(now - created)

    section = Section(
        activity_image=settings.activity_image or None,
        activity_title=f"{repo.slug} ({build.branch}{build.tag})",
        activity_subtitle=status.upper(),
        activity_text=f"{build.event} {build.deploy_to} {commit.ref} (build time {elapsed})",
        facts=facts,
        markdown=False,
    )

    return MessageCard(
        theme_color=ThemeColor.for_status(status).value,
        summary=repo.slug,
        sections=[section],
        potential_action=actions,
    )


async def _collect_logs(fetch_logs: LogFetcher, pipeline: PipelineContext) -> list[Fact]:
    try:
        return list(await fetch_logs(pipeline))
    except Exception:
        logger.exception("Failed to fetch build logs, sending card without them")
        return []
