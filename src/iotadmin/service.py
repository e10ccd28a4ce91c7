"""Lifecycle owner for the admin core."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import aiohttp

from iotadmin._host import HostEnvironment
from iotadmin._store import ObjectStore
from iotadmin._transport import AiohttpTransport, HttpTransport
from iotadmin.config import AdminConfig
from iotadmin.exceptions import AdminError, ConfigurationUnavailable, StoreError
from iotadmin.mirror import ObjectChange, ObjectMirror
from iotadmin.models.updates import UpdateReport
from iotadmin.pollers.news import NewsPoller
from iotadmin.pollers.ratings import RatingsPoller
from iotadmin.pollers.repository import RepositoryPoller
from iotadmin.rights import RightsTaskQueue
from iotadmin.updates import UpdateEngine

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AdminService:
    """Own the mirror, the update engine, the rights queue and the pollers.

    Usage::

        async with AdminService(config, store, host) as service:
            ...
            await service.on_object_change("system.config", document)

    Every timer is cancelled and queued rights tasks are discarded on exit.
    """

    def __init__(
        self,
        config: AdminConfig,
        store: ObjectStore,
        host: HostEnvironment,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: HttpTransport | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._host = host
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._clock = clock

        self.mirror = ObjectMirror(clock=clock)
        self.updates = UpdateEngine(config, store, host, self.mirror, clock=clock)
        self.rights = RightsTaskQueue(config, store)
        self.repository_poller = RepositoryPoller(config, host, self.mirror, clock=clock)
        self.mirror.add_language_listener(self._on_language_changed)
        self.repository_poller.add_listener(self._on_repository_refreshed)
        self._news: NewsPoller | None = None
        self._ratings: RatingsPoller | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AdminService:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = AiohttpTransport(self._config, self._http_session)
        self._news = NewsPoller(self._config, self._store, self._transport, clock=self._clock)
        self._ratings = RatingsPoller(self._config, self._store, self._transport)

        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Load the mirror, publish the first report and start the pollers."""
        documents = await self._store.get_objects_by_prefix("")
        self.mirror.load(documents)
        self.mirror.set_update_trigger(self.updates.schedule_recompute)

        created = await self.updates.ensure_state_objects()
        if created:
            _logger.debug("Created %d state object(s)", created)

        try:
            await self.updates.recompute()
        except ConfigurationUnavailable:
            pass

        await self.rights.apply_access_rights()

        self.repository_poller.start()
        await self.ratings_poller.start()
        self.news_poller.start()
        self._started = True
        _logger.info("Admin core started for %s", self._config.namespace)

    async def close(self) -> None:
        self.mirror.set_update_trigger(None)
        await self.updates.close()
        await self.repository_poller.close()
        if self._news is not None:
            await self._news.close()
        if self._ratings is not None:
            await self._ratings.close()
        await self.rights.close()

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if self._started:
            _logger.info("Admin core stopped")
        self._started = False

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def news_poller(self) -> NewsPoller:
        if self._news is None:
            raise AdminError("Service not initialized. Use 'async with AdminService(...) as service:'")
        return self._news

    @property
    def ratings_poller(self) -> RatingsPoller:
        if self._ratings is None:
            raise AdminError("Service not initialized. Use 'async with AdminService(...) as service:'")
        return self._ratings

    # ------------------------------------------------------------------
    # Inbound notifications and requests
    # ------------------------------------------------------------------

    async def on_object_change(self, object_id: str, document: Mapping[str, Any] | None) -> ObjectChange | None:
        """Apply a store change notification (``None`` means deleted)."""
        return self.mirror.apply_change(object_id, document)

    async def check_updates(self, repository: Mapping[str, Any] | None = None) -> UpdateReport:
        """Recompute the updates report right now, bypassing the debounce."""
        self.updates.timer.cancel()
        return await self.updates.recompute(repository)

    async def refresh_repository(self) -> bool:
        return await self.repository_poller.check(force=True)

    async def refresh_ratings(self) -> dict[str, Any]:
        return await self.ratings_poller.refresh()

    async def update_object_owner(self, object_id: str) -> bool:
        """Queue *object_id* for ownership propagation to the default user."""
        try:
            return await self.rights.enqueue_object(object_id)
        except StoreError as exc:
            _logger.warning("Cannot queue %s: %s", object_id, exc)
            return False

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def _on_language_changed(self, language: str) -> None:
        _logger.info("Language changed to %s", language)

    def _on_repository_refreshed(self, repo_name: str) -> None:
        _logger.debug("Repository %s refreshed, scheduling update check", repo_name)
        self.updates.schedule_recompute()
