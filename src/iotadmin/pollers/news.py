"""News feed poller.

Each cycle fetches the feed's hash token first and only downloads the feed
when the token differs from the persisted one.  New items are merged into
the retained history (newest first), which is pruned to the retention
window and persisted only when it actually changed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from iotadmin._constants import STATE_NEWS_ETAG, STATE_NEWS_FEED, STATE_NEWS_LAST_ID
from iotadmin._store import ObjectStore, fetch_state
from iotadmin._timer import RearmableTimer
from iotadmin._transport import HttpTransport
from iotadmin.config import AdminConfig
from iotadmin.exceptions import AdminError, ParseError
from iotadmin.models._base import parse_timestamp
from iotadmin.models.news import NewsHash, NewsItem

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_news(raw: Any) -> list[NewsItem]:
    """Parse a JSON array of news items, dropping entries without a usable ``created``."""
    if not isinstance(raw, list):
        return []
    items: list[NewsItem] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        try:
            items.append(NewsItem.model_validate(entry))
        except ValidationError:
            _logger.debug("Dropping news item without valid 'created': %r", entry.get("created"))
    return items


def serialize_news(items: Sequence[NewsItem]) -> str:
    return json.dumps([item.to_document() for item in items])


def merge_news(
    history: Iterable[NewsItem],
    incoming: Iterable[NewsItem],
    *,
    watermark: datetime | None,
    now: datetime,
    retention: timedelta,
) -> list[NewsItem]:
    """Merge *incoming* into *history*.

    An incoming item is admitted when it is newer than *watermark* (or there
    is none) and no item with the same ``created`` exists yet.  The result
    is sorted newest first and items older than *retention* are dropped.
    """
    merged = list(history)
    seen = {item.created for item in merged}
    for item in incoming:
        if watermark is not None and item.created <= watermark:
            continue
        if item.created in seen:
            continue
        merged.append(item)
        seen.add(item.created)

    merged.sort(key=lambda item: item.created, reverse=True)
    return [item for item in merged if now - item.created <= retention]


class NewsPoller:
    """Poll the news feed every ``config.news_interval`` seconds."""

    def __init__(
        self,
        config: AdminConfig,
        store: ObjectStore,
        transport: HttpTransport,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._transport = transport
        self._clock = clock
        self._timer = RearmableTimer("news", self.poll)
        self.history: list[NewsItem] = []

    @property
    def timer(self) -> RearmableTimer:
        return self._timer

    def start(self) -> None:
        """Run the first cycle as soon as the loop is free."""
        self._timer.rearm(0)

    async def close(self) -> None:
        await self._timer.close()

    async def poll(self) -> bool:
        """Run one cycle and reschedule the next one, whatever the outcome.

        Returns whether the persisted feed changed.
        """
        self._timer.cancel()
        changed = False
        try:
            changed = await self._cycle()
        except AdminError as exc:
            _logger.error("Cannot update news: %s", exc)
        except Exception:
            _logger.exception("Cannot update news")
        self._timer.rearm(self._config.news_interval)
        return changed

    async def _cycle(self) -> bool:
        etag_id = self._config.state_id(STATE_NEWS_ETAG)
        feed_id = self._config.state_id(STATE_NEWS_FEED)

        etag_state = await fetch_state(self._store, etag_id)
        old_token = str(etag_state.val) if etag_state is not None and etag_state.val else None

        raw_hash = await self._transport.get_json(self._config.news_hash_url)
        try:
            token = NewsHash.model_validate(raw_hash).hash if isinstance(raw_hash, dict) else None
        except ValidationError as exc:
            raise ParseError("Cannot parse news hash", url=self._config.news_hash_url) from exc
        if not token:
            raise ParseError("News hash is missing", url=self._config.news_hash_url)
        if token == old_token:
            _logger.debug("News unchanged (hash %s)", token)
            return False

        raw_feed = await self._transport.get_json(self._config.news_url)
        if not isinstance(raw_feed, list):
            raise ParseError("Cannot parse news", url=self._config.news_url)
        incoming = parse_news(raw_feed)

        history, previous = await self._read_history(feed_id)
        watermark = await self._read_watermark()

        merged = merge_news(
            history,
            incoming,
            watermark=watermark,
            now=self._clock(),
            retention=timedelta(days=self._config.news_retention_days),
        )
        self.history = merged

        serialized = serialize_news(merged)
        changed = serialized != previous
        if changed:
            await self._store.set_state(feed_id, serialized, ack=True)
        await self._store.set_state(etag_id, token, ack=True)
        _logger.debug("News merged: %d item(s), changed=%s", len(merged), changed)
        return changed

    async def _read_history(self, feed_id: str) -> tuple[list[NewsItem], str]:
        state = await fetch_state(self._store, feed_id)
        raw: Any = []
        if state is not None and isinstance(state.val, str) and state.val:
            try:
                raw = json.loads(state.val)
            except json.JSONDecodeError:
                _logger.debug("Persisted news feed is corrupt, starting empty")
        history = parse_news(raw)
        return history, serialize_news(history)

    async def _read_watermark(self) -> datetime | None:
        state = await fetch_state(self._store, self._config.state_id(STATE_NEWS_LAST_ID))
        if state is None or not state.val:
            return None
        try:
            return parse_timestamp(state.val)
        except ValueError:
            _logger.debug("Ignoring unparsable news watermark %r", state.val)
            return None
