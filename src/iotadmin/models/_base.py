"""Base model and timestamp helpers for object-store documents.

Every iotadmin model inherits from :class:`AdminBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase document keys map
  automatically to snake_case fields (``activeRepo`` -> ``active_repo``).
* ``populate_by_name`` so models can be built in code with field names.
* :meth:`AdminBaseModel.to_document` to dump back to the wire shape.

Timestamps in the object store show up as epoch seconds, epoch
milliseconds or ISO-8601 strings depending on who wrote them;
:data:`AdminTimestamp` normalizes all of them to aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Convert an epoch (seconds **or** milliseconds) or ISO string to a UTC datetime.

    Returns ``None`` for ``None`` and empty strings.  Raises
    :class:`ValueError` for anything else that cannot be interpreted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            return parse_timestamp(int(text))
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    raise ValueError(f"not a timestamp: {value!r}")


def to_epoch_ms(value: datetime) -> int:
    """Epoch milliseconds of an aware datetime."""
    return int(value.timestamp() * 1000)


AdminTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) and ISO strings to UTC datetimes."""


def _coerce_version(value: Any) -> Any:
    # Hand-edited documents sometimes carry ``"version": 1.2``.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


VersionString = Annotated[str | None, BeforeValidator(_coerce_version)]


class AdminBaseModel(BaseModel):
    """Base for object-store document models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self) -> dict[str, Any]:
        """Dump to the store's wire shape (aliases, no unset ``None`` values)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
