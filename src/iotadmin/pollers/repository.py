"""Repository refresh poller.

Asks the host to refresh the active repository whenever the mirrored copy is
older than ``config.auto_update_hours``.  While the copy is fresh, the next
check is scheduled for the moment it expires.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from iotadmin._constants import ERROR_PERMISSION, SYSTEM_CONFIG_ID, SYSTEM_REPOSITORIES_ID
from iotadmin._host import HostEnvironment
from iotadmin._timer import RearmableTimer
from iotadmin.config import AdminConfig
from iotadmin.exceptions import AdminError, HostPermissionError
from iotadmin.mirror.store import ObjectMirror
from iotadmin.models._base import parse_timestamp
from iotadmin.models.repository import has_repository

_logger = logging.getLogger(__name__)

RefreshListener = Callable[[str], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RepositoryPoller:
    def __init__(
        self,
        config: AdminConfig,
        host: HostEnvironment,
        mirror: ObjectMirror,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._host = host
        self._mirror = mirror
        self._clock = clock
        self._timer = RearmableTimer("repository", self._scheduled_check)
        self._listeners: list[RefreshListener] = []

    @property
    def timer(self) -> RearmableTimer:
        return self._timer

    @property
    def interval(self) -> timedelta:
        return timedelta(hours=self._config.auto_update_hours)

    @property
    def enabled(self) -> bool:
        return self._config.auto_update_hours > 0

    def add_listener(self, listener: RefreshListener) -> None:
        """Call *listener* with the repository name after every successful refresh."""
        self._listeners.append(listener)

    def start(self) -> None:
        if self.enabled:
            self._timer.rearm(0)

    async def close(self) -> None:
        await self._timer.close()

    def expires_at(self) -> datetime | None:
        """When the mirrored active repository becomes stale, if it exists."""
        system_config = self._mirror.get(SYSTEM_CONFIG_ID)
        active = system_config.common.active_repo if system_config is not None else None
        repositories = self._mirror.get(SYSTEM_REPOSITORIES_ID)
        if repositories is None or repositories.ts is None or not has_repository(repositories, active):
            return None
        fetched_at = parse_timestamp(repositories.ts)
        if fetched_at is None:
            return None
        return fetched_at + self.interval

    async def check(self, force: bool = False) -> bool:
        """Refresh the active repository if stale (or *force*) and reschedule.

        Returns whether a refresh succeeded.
        """
        system_config = self._mirror.get(SYSTEM_CONFIG_ID)
        active = system_config.common.active_repo if system_config is not None else None
        if not active:
            _logger.error('May not read "system.config"')
            self._rearm(self.interval)
            return False

        now = self._clock()
        expires_at = self.expires_at()
        if not force and expires_at is not None and now < expires_at:
            _logger.debug("Next repo update on %s", expires_at.isoformat())
            self._rearm(expires_at - now)
            return False

        _logger.info("Request actual repository...")
        refreshed = False
        try:
            reply = await self._host.request_repository_refresh(active)
            if reply == ERROR_PERMISSION:
                raise HostPermissionError(f"Host refused to refresh repository {active}")
        except HostPermissionError:
            _logger.error('May not read "getRepository"')
        except AdminError as exc:
            _logger.error("Cannot refresh repository %s: %s", active, exc)
        except Exception:
            _logger.exception("Cannot refresh repository %s", active)
        else:
            _logger.info("Repository received successfully.")
            refreshed = True
            self._notify(active)

        if self.enabled:
            _logger.debug("Next repo update on %s", (self._clock() + self.interval).isoformat())
        self._rearm(self.interval)
        return refreshed

    async def _scheduled_check(self) -> None:
        await self.check()

    def _rearm(self, delay: timedelta) -> None:
        if not self.enabled:
            return
        self._timer.rearm(delay.total_seconds())

    def _notify(self, repo_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(repo_name)
            except Exception:
                _logger.debug("Repository listener failed", exc_info=True)
