"""Conditional upgrade messages attached to repository releases.

A release may carry messages that are only relevant for certain upgrade
paths, e.g.::

    {
        "condition": {"operand": "and", "rules": ["oldVersion<=1.0.44", "newVersion>=1.0.45"]},
        "title": {"en": "Important notice"},
        "text": {"en": "Main text"},
        "link": "https://example.org/pricing",
        "buttons": ["agree", "cancel"],
        "level": "warn"
    }

Evaluation lives in :func:`iotadmin.versions.filter_messages`.
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, field_validator

from iotadmin.models._base import AdminBaseModel


class MessageCondition(AdminBaseModel):
    operand: str = "and"
    rules: list[str] | None = None

    @field_validator("rules", mode="before")
    @classmethod
    def _wrap_single_rule(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value] if value else None
        return value


class UpdateMessage(AdminBaseModel):
    """One conditional message; localized fields stay as delivered."""

    model_config = ConfigDict(extra="allow")

    condition: MessageCondition | None = None
    title: str | dict[str, str] | None = None
    text: str | dict[str, str] | None = None
    link: str | None = None
    link_text: str | dict[str, str] | None = None
    buttons: list[str] | None = None
    level: str | None = None

    def localized(self, field: str, language: str, fallback: str = "en") -> str | None:
        """Return *field* in *language* (or *fallback*) if it is localized."""
        value = getattr(self, field, None)
        if isinstance(value, dict):
            return value.get(language) or value.get(fallback)
        return value
