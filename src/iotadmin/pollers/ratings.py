"""Usage-ratings poller keyed by the anonymous installation id."""

from __future__ import annotations

import logging
from typing import Any

from iotadmin._constants import META_UUID_ID
from iotadmin._store import ObjectStore, fetch_record
from iotadmin._timer import RearmableTimer
from iotadmin._transport import HttpTransport
from iotadmin.config import AdminConfig
from iotadmin.exceptions import ParseError, StoreError, TransientNetworkError

_logger = logging.getLogger(__name__)


class RatingsPoller:
    """Keep an in-memory ratings document fresh.

    The installation id is read once by :meth:`start`; without one the
    poller stays inactive.
    """

    def __init__(self, config: AdminConfig, store: ObjectStore, transport: HttpTransport) -> None:
        self._config = config
        self._store = store
        self._transport = transport
        self._timer = RearmableTimer("ratings", self._scheduled_refresh)
        self._uuid: str | None = None
        self._ratings: dict[str, Any] = {}

    @property
    def timer(self) -> RearmableTimer:
        return self._timer

    @property
    def uuid(self) -> str | None:
        return self._uuid

    @property
    def ratings(self) -> dict[str, Any]:
        return dict(self._ratings)

    @property
    def active(self) -> bool:
        return self._uuid is not None

    async def start(self) -> bool:
        """Resolve the installation id and schedule the first refresh.

        Returns whether the poller was activated.
        """
        try:
            record = await fetch_record(self._store, META_UUID_ID)
        except StoreError as exc:
            _logger.warning("Cannot read %s: %s", META_UUID_ID, exc)
            return False
        uuid = record.native.get("uuid") if record is not None else None
        if not isinstance(uuid, str) or not uuid:
            _logger.info("No installation id found, ratings are disabled")
            return False
        self._uuid = uuid
        self._timer.rearm(0)
        return True

    async def close(self) -> None:
        await self._timer.close()

    async def refresh(self) -> dict[str, Any]:
        """Fetch the ratings now and reschedule the next refresh.

        Returns a copy of the current ratings document.
        """
        if self._uuid is None:
            return {}

        self._timer.cancel()
        url = self._config.rating_url.format(uuid=self._uuid)
        try:
            body = await self._transport.get_json(url)
        except ParseError as exc:
            _logger.error("Cannot parse ratings: %s", exc)
            self._ratings = self._stamped(self._ratings)
        except TransientNetworkError as exc:
            _logger.warning("Cannot read ratings: %s", exc)
        except Exception:
            _logger.exception("Cannot update ratings")
        else:
            self._ratings = self._stamped(body)
        finally:
            self._timer.rearm(self._config.ratings_interval)
        return self.ratings

    async def _scheduled_refresh(self) -> None:
        await self.refresh()
        _logger.info("Adapter rating updated")

    def _stamped(self, body: Any) -> dict[str, Any]:
        ratings = dict(body) if isinstance(body, dict) else {}
        ratings["uuid"] = self._uuid
        return ratings
