"""Repository snapshots and installed component versions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, ValidationError

from iotadmin.models._base import AdminBaseModel, VersionString, parse_timestamp
from iotadmin.models.messages import UpdateMessage
from iotadmin.models.objects import ObjectRecord

_logger = logging.getLogger(__name__)


class ComponentRelease(AdminBaseModel):
    """A component entry of a repository feed or of the installed set."""

    model_config = ConfigDict(extra="allow")

    version: VersionString = None
    messages: list[UpdateMessage] = Field(default_factory=list)


def parse_releases(raw: Any) -> dict[str, ComponentRelease]:
    """Parse a ``name -> {version, ...}`` mapping.

    Entries that are not mappings or fail validation are dropped so one
    broken entry never hides the rest of the feed.
    """
    if not isinstance(raw, Mapping):
        return {}
    releases: dict[str, ComponentRelease] = {}
    for name, entry in raw.items():
        if not isinstance(entry, Mapping):
            continue
        try:
            releases[str(name)] = ComponentRelease.model_validate(entry)
        except ValidationError:
            _logger.debug("Dropping malformed release entry %s", name, exc_info=True)
    return releases


class RepositorySnapshot(AdminBaseModel):
    """Latest available release per component for one named repository."""

    name: str | None = None
    releases: dict[str, ComponentRelease] = Field(default_factory=dict)
    timestamp: datetime | None = None

    @classmethod
    def from_mapping(cls, releases: Mapping[str, Any], *, name: str | None = None) -> RepositorySnapshot:
        return cls(name=name, releases=parse_releases(releases))

    @classmethod
    def from_record(cls, record: ObjectRecord | None, repo_name: str | None) -> RepositorySnapshot | None:
        """Extract *repo_name* from the ``system.repositories`` record.

        Returns ``None`` when the record, the named repository or its
        release map is missing.
        """
        if record is None or not repo_name:
            return None
        repositories = record.native.get("repositories")
        if not isinstance(repositories, Mapping):
            return None
        repo = repositories.get(repo_name)
        if not isinstance(repo, Mapping):
            return None
        releases = repo.get("json")
        if not isinstance(releases, Mapping):
            return None
        timestamp = None
        if record.ts is not None:
            timestamp = parse_timestamp(record.ts)
        return cls(name=repo_name, releases=parse_releases(releases), timestamp=timestamp)


def has_repository(record: ObjectRecord | None, repo_name: str | None) -> bool:
    """Whether *repo_name* exists in the repositories record (with or without releases)."""
    if record is None or not repo_name:
        return False
    repositories = record.native.get("repositories")
    return isinstance(repositories, Mapping) and repo_name in repositories
