"""
Teams notification pipeline for drone-teams.

Builds a MessageCard from pipeline state, optionally enriched with failed
step logs, and delivers it to a Teams incoming webhook.
"""

from droneteams.notifications.builder import build_card, format_duration, parse_custom_fact
from droneteams.notifications.card import Action, Fact, MessageCard, Section, ThemeColor
from droneteams.notifications.dispatcher import DeliveryError, TeamsDispatcher
from droneteams.notifications.logs import BuildLogFetcher, LogFetchError

__all__ = [
    "Action",
    "BuildLogFetcher",
    "DeliveryError",
    "Fact",
    "LogFetchError",
    "MessageCard",
    "Section",
    "TeamsDispatcher",
    "ThemeColor",
    "build_card",
    "format_duration",
    "parse_custom_fact",
]
