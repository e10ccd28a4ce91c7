"""Normalized object change notifications.

Inbound notifications from the object store are converted into these
events.  Only :class:`iotadmin.mirror.store.ObjectMirror` applies them.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from iotadmin.models.objects import ObjectRecord


class ObjectChange(BaseModel):
    """An upsert (``record`` set) or a deletion (``record is None``)."""

    model_config = ConfigDict(frozen=True)

    object_id: str = Field(..., description="Object id")
    record: ObjectRecord | None = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def deleted(self) -> bool:
        return self.record is None

    @field_validator("object_id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        object_id = value.strip()
        if not object_id:
            raise ValueError("object_id must be non-empty")
        return object_id

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
