"""
MessageCard schema for Teams incoming webhooks.

Field names are snake_case in Python and aliased to the connector's wire
names. Optional fields default to ``None`` and are dropped by
``MessageCard.to_payload`` so the receiver never sees nulls.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ThemeColor(str, Enum):
    SUCCESS = "96FF33"
    FAILURE = "FF5733"
    BUILDING = "002BFF"

    @classmethod
    def for_status(cls, status: str) -> ThemeColor:
        if status == "failure":
            return cls.FAILURE
        if status == "building":
            return cls.BUILDING
        return cls.SUCCESS


class _CardModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class KeyValue(_CardModel):
    name: str
    value: str


class Fact(_CardModel):
    name: str
    value: str


class OpenUriTarget(_CardModel):
    os: str = "default"
    uri: str


class Input(_CardModel):
    """ActionCard input (TextInput, DateInput, MultichoiceInput)."""

    type: str = Field(alias="@type")
    id: str
    is_required: bool = Field(default=False, alias="isRequired")
    title: str = ""
    value: str = ""
    # TextInput
    is_multiline: Optional[bool] = Field(default=None, alias="isMultiline")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    # DateInput
    include_time: Optional[bool] = Field(default=None, alias="includeTime")
    # MultichoiceInput
    choices: Optional[list[KeyValue]] = None
    is_multi_select: Optional[bool] = Field(default=None, alias="isMultiSelect")
    style: Optional[str] = None


class Action(_CardModel):
    """A potentialAction entry: OpenUri, HttpPOST or ActionCard."""

    type: str = Field(alias="@type")
    name: str
    # OpenUri
    targets: Optional[list[OpenUriTarget]] = None
    # HttpPOST
    target: Optional[str] = None
    headers: Optional[list[KeyValue]] = None
    body: Optional[str] = None
    body_content_type: Optional[str] = Field(default=None, alias="bodyContentType")
    # ActionCard
    inputs: Optional[list[Input]] = None
    actions: Optional[list[Action]] = None

    @classmethod
    def open_uri(cls, name: str, uri: str, os: str = "default") -> Action:
        return cls(type="OpenUri", name=name, targets=[OpenUriTarget(os=os, uri=uri)])


class Section(_CardModel):
    activity_image: Optional[str] = Field(default=None, alias="activityImage")
    activity_title: str = Field(default="", alias="activityTitle")
    activity_subtitle: str = Field(default="", alias="activitySubtitle")
    activity_text: str = Field(default="", alias="activityText")
    facts: list[Fact] = Field(default_factory=list)
    markdown: bool = False


class MessageCard(_CardModel):
    """Legacy actionable message card accepted by Teams connectors."""

    type: str = Field(default="MessageCard", alias="@type")
    context: str = Field(default="http://schema.org/extensions", alias="@context")
    theme_color: str = Field(default=ThemeColor.SUCCESS.value, alias="themeColor")
    summary: str = ""
    sections: list[Section] = Field(default_factory=list)
    potential_action: list[Action] = Field(default_factory=list, alias="potentialAction")

    def to_payload(self) -> dict[str, Any]:
        """Wire representation with unset optional fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def fact(self, name: str) -> Optional[str]:
        """Value of the first fact called *name*, if any."""
        for section in self.sections:
            for fact in section.facts:
                if fact.name == name:
                    return fact.value
        return None

    def action(self, name: str) -> Optional[Action]:
        for action in self.potential_action:
            if action.name == name:
                return action
        return None
