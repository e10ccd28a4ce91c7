"""In-memory mirror of the object store.

This is the only component allowed to change the mirrored records.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from iotadmin._constants import ADAPTER_DESCRIPTOR_RE, SYSTEM_CONFIG_ID, SYSTEM_REPOSITORIES_ID
from iotadmin._redact import redact_document
from iotadmin._store import coerce_record
from iotadmin.mirror.events import ObjectChange
from iotadmin.models.objects import ObjectRecord

_logger = logging.getLogger(__name__)

ChangeListener = Callable[[ObjectChange], None]
LanguageListener = Callable[[str], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def triggers_update_check(object_id: str) -> bool:
    """Whether a change of *object_id* affects the available-updates report."""
    return object_id == SYSTEM_REPOSITORIES_ID or ADAPTER_DESCRIPTOR_RE.match(object_id) is not None


class ObjectMirror:
    """Process-wide cache of object-store records.

    Updates are applied synchronously by :meth:`apply_change`; a single id is
    therefore never observed half-updated.  Listeners are notifications only:
    their failures are logged and never reach the caller.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        on_update_trigger: Callable[[], None] | None = None,
    ) -> None:
        self._clock = clock
        self._records: dict[str, ObjectRecord] = {}
        self._listeners: list[ChangeListener] = []
        self._language_listeners: list[LanguageListener] = []
        self._on_update_trigger = on_update_trigger
        self.language: str = "en"
        self.tmp_path: str | None = None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._records

    def get(self, object_id: str) -> ObjectRecord | None:
        return self._records.get(object_id)

    def ids(self) -> list[str]:
        return list(self._records)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def set_update_trigger(self, trigger: Callable[[], None] | None) -> None:
        self._on_update_trigger = trigger

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def add_language_listener(self, listener: LanguageListener) -> None:
        self._language_listeners.append(listener)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def load(self, records: Iterable[ObjectRecord | Mapping[str, Any]]) -> int:
        """Replace the mirror content with a full store listing.

        Returns the number of records loaded.  Instance objects may declare a
        ``tmpPath`` they need access to; the first one wins.
        """
        self._records = {}
        self.tmp_path = None
        for raw in records:
            object_id = raw.id if isinstance(raw, ObjectRecord) else str(raw.get("_id", ""))
            if not object_id:
                continue
            try:
                record = coerce_record(object_id, raw)
            except ValidationError:
                _logger.debug("Skipping malformed object %s during load", object_id, exc_info=True)
                continue
            self._records[record.id] = record
            if record.type == "instance" and record.common.tmp_path:
                if self.tmp_path:
                    _logger.warning("tmpPath has multiple definitions")
                self.tmp_path = record.common.tmp_path

        config = self._records.get(SYSTEM_CONFIG_ID)
        if config is not None and config.common.language:
            self.language = config.common.language
        _logger.info("Mirrored %d objects", len(self._records))
        return len(self._records)

    def apply_change(
        self,
        object_id: str,
        record: ObjectRecord | Mapping[str, Any] | None,
    ) -> ObjectChange | None:
        """Upsert *record*, or delete *object_id* when *record* is ``None``.

        Returns the applied change, or ``None`` when the document could not
        be parsed (the mirror is then left untouched).
        """
        if record is None:
            change = ObjectChange(object_id=object_id, observed_at=self._clock())
            self._records.pop(change.object_id, None)
        else:
            try:
                parsed = coerce_record(object_id, record)
            except ValidationError:
                _logger.warning("Ignoring malformed change for %s", object_id)
                _logger.debug("Malformed document: %s", redact_document(object_id, record), exc_info=True)
                return None
            change = ObjectChange(object_id=object_id, record=parsed, observed_at=self._clock())
            self._records[change.object_id] = parsed
            self._after_upsert(change.object_id, parsed)

        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.debug("Object change listener failed", exc_info=True)
        return change

    def _after_upsert(self, object_id: str, record: ObjectRecord) -> None:
        if object_id == SYSTEM_CONFIG_ID and record.common.language:
            self.language = record.common.language
            for listener in list(self._language_listeners):
                try:
                    listener(self.language)
                except Exception:
                    _logger.debug("Language listener failed", exc_info=True)

        if triggers_update_check(object_id) and self._on_update_trigger is not None:
            self._on_update_trigger()
