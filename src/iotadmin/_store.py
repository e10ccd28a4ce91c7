"""Object-store collaborator interface and parsing helpers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from pydantic import ValidationError

from iotadmin.models.objects import ObjectRecord, StateValue

_logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """Structural interface of the object store.

    Implementations raise :class:`iotadmin.exceptions.StoreReadError` /
    :class:`iotadmin.exceptions.StoreWriteError` on failure.  Documents are
    plain mappings in the store's wire shape (``_id``, ``common``, ...).
    """

    async def get_object(self, object_id: str) -> Mapping[str, Any] | None: ...

    async def set_object(self, object_id: str, document: Mapping[str, Any]) -> None: ...

    async def get_objects_by_prefix(self, prefix: str) -> list[Mapping[str, Any]]: ...

    async def get_state(self, state_id: str) -> Mapping[str, Any] | None: ...

    async def set_state(self, state_id: str, value: Any, *, ack: bool = True) -> None: ...


def coerce_record(object_id: str, raw: ObjectRecord | Mapping[str, Any]) -> ObjectRecord:
    """Validate *raw* into an :class:`ObjectRecord`, defaulting ``_id`` to *object_id*.

    Raises :class:`pydantic.ValidationError` for documents that cannot be parsed.
    """
    if isinstance(raw, ObjectRecord):
        return raw
    if "_id" not in raw:
        raw = {"_id": object_id, **raw}
    return ObjectRecord.model_validate(raw)


async def fetch_record(store: ObjectStore, object_id: str) -> ObjectRecord | None:
    """Read and parse one object; unparsable documents are logged and treated as absent."""
    raw = await store.get_object(object_id)
    if raw is None:
        return None
    try:
        return coerce_record(object_id, raw)
    except ValidationError:
        _logger.warning("Object %s is malformed and was ignored", object_id)
        _logger.debug("Validation failure for %s", object_id, exc_info=True)
        return None


async def fetch_state(store: ObjectStore, state_id: str) -> StateValue | None:
    """Read and parse one state value."""
    raw = await store.get_state(state_id)
    if raw is None:
        return None
    try:
        return StateValue.model_validate(raw)
    except ValidationError:
        _logger.debug("State %s is malformed", state_id, exc_info=True)
        return None
