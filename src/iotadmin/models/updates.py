"""Derived update report."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import Field, model_validator

from iotadmin.models._base import AdminBaseModel, to_epoch_ms


class UpdateDetail(AdminBaseModel):
    available_version: str
    installed_version: str


class UpdateReport(AdminBaseModel):
    """Available updates computed from a snapshot and the installed set.

    ``count``, ``names`` and ``details`` always describe the same set of
    components.
    """

    count: int = 0
    names: list[str] = Field(default_factory=list)
    has_new_updates: bool = False
    details: dict[str, UpdateDetail] = Field(default_factory=dict)
    last_checked_at: datetime

    @model_validator(mode="after")
    def _check_consistency(self) -> UpdateReport:
        if not self.count == len(self.names) == len(self.details):
            raise ValueError(
                f"inconsistent report: count={self.count} names={len(self.names)} details={len(self.details)}"
            )
        return self

    @classmethod
    def empty(cls, checked_at: datetime) -> UpdateReport:
        return cls(last_checked_at=checked_at)

    @property
    def names_text(self) -> str:
        return ", ".join(self.names)

    @property
    def details_document(self) -> dict[str, Any]:
        return {name: detail.to_document() for name, detail in self.details.items()}

    @property
    def details_json(self) -> str:
        return json.dumps(self.details_document)

    @property
    def last_checked_ms(self) -> int:
        return to_epoch_ms(self.last_checked_at)


def parse_details_json(value: Any) -> dict[str, UpdateDetail]:
    """Parse a previously published detail JSON; anything unusable yields ``{}``."""
    if not isinstance(value, str) or not value:
        return {}
    try:
        raw = json.loads(value)
    except json.JSONDecodeError:
        return {}
    if not isinstance(raw, dict):
        return {}
    details: dict[str, UpdateDetail] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            continue
        available = entry.get("availableVersion")
        installed = entry.get("installedVersion")
        if isinstance(available, str) and isinstance(installed, str):
            details[name] = UpdateDetail(available_version=available, installed_version=installed)
    return details
