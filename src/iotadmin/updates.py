"""Available-updates engine.

Compares the active repository snapshot with the installed component
versions and publishes the result as independent states below the admin
namespace:

* ``info.updatesNumber`` - number of components with an update
* ``info.updatesList`` - short names, ``", "``-joined
* ``info.newUpdates`` - at least one update was not published before
* ``info.updatesJson`` - ``{name: {availableVersion, installedVersion}}``
* ``info.lastUpdateCheck`` - epoch ms of the check
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from iotadmin._constants import (
    STATE_LAST_UPDATE_CHECK,
    STATE_NEW_UPDATES,
    STATE_UPDATES_JSON,
    STATE_UPDATES_LIST,
    STATE_UPDATES_NUMBER,
    SYSTEM_CONFIG_ID,
    SYSTEM_REPOSITORIES_ID,
)
from iotadmin._host import HostEnvironment
from iotadmin._store import ObjectStore, fetch_state
from iotadmin._timer import RearmableTimer
from iotadmin.config import AdminConfig
from iotadmin.exceptions import ConfigurationUnavailable, StoreError
from iotadmin.mirror.store import ObjectMirror
from iotadmin.models.messages import UpdateMessage
from iotadmin.models.repository import ComponentRelease, RepositorySnapshot, has_repository, parse_releases
from iotadmin.models.updates import UpdateDetail, UpdateReport, parse_details_json
from iotadmin.versions import filter_messages, is_update_available

_logger = logging.getLogger(__name__)

# (relative id, display name, value type, role, default)
_STATE_DEFINITIONS: tuple[tuple[str, str, str, str, Any], ...] = (
    (STATE_UPDATES_NUMBER, "Number of adapters to update", "number", "indicator.updates", 0),
    (STATE_UPDATES_LIST, "List of adapters to update", "string", "indicator.updates", ""),
    (STATE_NEW_UPDATES, "Indicator if new adapter updates are available", "boolean", "indicator.updates", False),
    (STATE_UPDATES_JSON, "JSON string with adapter update information", "string", "indicator.updates", "{}"),
    (STATE_LAST_UPDATE_CHECK, "Timestamp of last update check", "number", "value.time", 0),
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def short_name(name: str) -> str:
    """Strip everything up to and including the first ``.``."""
    head, sep, tail = name.partition(".")
    return tail if sep else head


class UpdateEngine:
    """Recompute and publish the available-updates report."""

    def __init__(
        self,
        config: AdminConfig,
        store: ObjectStore,
        host: HostEnvironment,
        mirror: ObjectMirror,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._host = host
        self._mirror = mirror
        self._clock = clock
        self._timer = RearmableTimer("update-check", self._run_scheduled)
        self._last_snapshot: RepositorySnapshot | None = None
        self.last_report: UpdateReport | None = None

    @property
    def timer(self) -> RearmableTimer:
        return self._timer

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule_recompute(self) -> None:
        """Debounced trigger: every call restarts the quiet period."""
        self._timer.rearm(self._config.update_debounce)

    async def _run_scheduled(self) -> None:
        try:
            await self.recompute()
        except ConfigurationUnavailable:
            # Already logged and published as empty; the next trigger retries.
            pass

    async def close(self) -> None:
        await self._timer.close()

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def resolve_snapshot(self) -> RepositorySnapshot:
        """Resolve the active repository snapshot from the mirror.

        Raises
        ------
        ConfigurationUnavailable
            ``system.config`` has no usable ``activeRepo`` or the repository
            (or its release list) is missing.
        """
        system_config = self._mirror.get(SYSTEM_CONFIG_ID)
        if system_config is None:
            raise ConfigurationUnavailable('Repository cannot be read. Invalid "system.config" object.')
        active = system_config.common.active_repo
        if not active:
            raise ConfigurationUnavailable('No active repository selected in "system.config"')

        repositories = self._mirror.get(SYSTEM_REPOSITORIES_ID)
        snapshot = RepositorySnapshot.from_record(repositories, active)
        if snapshot is None:
            if has_repository(repositories, active):
                raise ConfigurationUnavailable(f"Repository {active} cannot be read")
            raise ConfigurationUnavailable("No repository source configured")
        return snapshot

    async def recompute(
        self,
        explicit_snapshot: RepositorySnapshot | Mapping[str, Any] | None = None,
    ) -> UpdateReport:
        """Recompute and publish the report.

        Parameters
        ----------
        explicit_snapshot
            Release map to compare against instead of the active repository.

        Raises
        ------
        ConfigurationUnavailable
            No explicit snapshot and the active repository cannot be
            resolved.  Empty values are published before raising.
        """
        now = self._clock()

        if explicit_snapshot is None:
            try:
                snapshot = self.resolve_snapshot()
            except ConfigurationUnavailable as exc:
                _logger.warning("%s", exc)
                report = UpdateReport.empty(now)
                self.last_report = report
                await self._publish(report)
                raise
        elif isinstance(explicit_snapshot, RepositorySnapshot):
            snapshot = explicit_snapshot
        else:
            snapshot = RepositorySnapshot.from_mapping(explicit_snapshot)

        installed = parse_releases(await self._host.get_installed_versions())
        previous = await self._read_published_details()

        report = self._diff(snapshot, installed, previous, now)
        self._last_snapshot = snapshot
        self.last_report = report
        await self._publish(report)
        _logger.debug("Update check: %d update(s), new=%s", report.count, report.has_new_updates)
        return report

    def _diff(
        self,
        snapshot: RepositorySnapshot,
        installed: Mapping[str, ComponentRelease],
        previous: Mapping[str, UpdateDetail],
        now: datetime,
    ) -> UpdateReport:
        names: list[str] = []
        details: dict[str, UpdateDetail] = {}
        has_new = False

        for name, release in snapshot.releases.items():
            current = installed.get(name)
            if current is None or not current.version or not release.version:
                continue
            try:
                newer = is_update_available(current.version, release.version)
            except ValueError as exc:
                _logger.warning("Error on version check for %s: %s", name, exc)
                continue
            if not newer:
                continue

            known = previous.get(name)
            if known is None or known.available_version != release.version:
                has_new = True
            details[name] = UpdateDetail(
                available_version=release.version,
                installed_version=current.version,
            )
            names.append(short_name(name))

        return UpdateReport(
            count=len(names),
            names=names,
            has_new_updates=has_new,
            details=details,
            last_checked_at=now,
        )

    async def _read_published_details(self) -> dict[str, UpdateDetail]:
        try:
            state = await fetch_state(self._store, self._config.state_id(STATE_UPDATES_JSON))
        except StoreError as exc:
            _logger.debug("Cannot read previous update details: %s", exc)
            return {}
        if state is None:
            return {}
        return parse_details_json(state.val)

    async def _publish(self, report: UpdateReport) -> None:
        values: tuple[tuple[str, Any], ...] = (
            (STATE_UPDATES_NUMBER, report.count),
            (STATE_UPDATES_LIST, report.names_text),
            (STATE_NEW_UPDATES, report.has_new_updates),
            (STATE_UPDATES_JSON, report.details_json),
            (STATE_LAST_UPDATE_CHECK, report.last_checked_ms),
        )
        for relative_id, value in values:
            state_id = self._config.state_id(relative_id)
            try:
                await self._store.set_state(state_id, value, ack=True)
            except StoreError as exc:
                _logger.warning("Cannot write %s: %s", state_id, exc)

    # ------------------------------------------------------------------
    # Supporting objects and messages
    # ------------------------------------------------------------------

    async def ensure_state_objects(self) -> int:
        """Create the published state objects that are missing or mistyped.

        Returns the number of objects written.
        """
        written = 0
        for relative_id, name, value_type, role, default in _STATE_DEFINITIONS:
            object_id = self._config.state_id(relative_id)
            existing = self._mirror.get(object_id)
            if existing is not None and existing.common.type == value_type:
                continue
            document = {
                "_id": object_id,
                "type": "state",
                "common": {
                    "role": role,
                    "name": name,
                    "type": value_type,
                    "read": True,
                    "write": False,
                    "def": default,
                },
                "native": {},
            }
            try:
                await self._store.set_object(object_id, document)
            except StoreError as exc:
                _logger.warning("Cannot create %s: %s", object_id, exc)
                continue
            written += 1
        return written

    def messages_for(self, name: str) -> list[UpdateMessage]:
        """Upgrade messages that apply to the pending update of *name*."""
        if self._last_snapshot is None or self.last_report is None:
            return []
        release = self._last_snapshot.releases.get(name)
        detail = self.last_report.details.get(name)
        if release is None or detail is None:
            return []
        return filter_messages(release.messages, detail.installed_version, detail.available_version)
