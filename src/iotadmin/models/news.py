"""News feed items."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, ModelWrapValidatorHandler, PrivateAttr, field_serializer, model_validator

from iotadmin.models._base import AdminBaseModel, AdminTimestamp


class NewsHash(AdminBaseModel):
    """Content token of the remote feed (``news-hash.json``)."""

    hash: str | None = None


class NewsItem(AdminBaseModel):
    """A news entry.

    ``created`` is its identity and is compared as a datetime.  It is written
    back exactly as received; other fields are kept verbatim.
    """

    model_config = ConfigDict(extra="allow")

    created: AdminTimestamp

    _raw_created: Any = PrivateAttr(default=None)

    @model_validator(mode="wrap")
    @classmethod
    def _keep_raw_created(cls, data: Any, handler: ModelWrapValidatorHandler[NewsItem]) -> NewsItem:
        item = handler(data)
        if isinstance(data, Mapping) and not isinstance(data.get("created"), datetime):
            item._raw_created = data.get("created")
        return item

    @field_serializer("created")
    def _serialize_created(self, value: datetime) -> Any:
        if self._raw_created is not None:
            return self._raw_created
        return value.isoformat()

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
