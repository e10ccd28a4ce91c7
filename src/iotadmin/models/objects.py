"""Object-store records and state values."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from iotadmin.models._base import AdminBaseModel, VersionString


class AccessControl(AdminBaseModel):
    """Access-control block of a record (``acl``)."""

    model_config = ConfigDict(extra="allow")

    owner: str | None = None
    owner_group: str | None = None
    permissions: int | None = Field(default=None, alias="object")


class ObjectCommon(AdminBaseModel):
    """The ``common`` attribute bag.

    Only the fields the core reads are declared; everything else is kept
    as extra data so a record survives a read/modify/write cycle intact.
    """

    model_config = ConfigDict(extra="allow")

    name: Any = None
    role: str | None = None
    type: str | None = None
    read: bool | None = None
    write: bool | None = None
    default_value: Any = Field(default=None, alias="def")
    version: VersionString = None
    # system.config
    language: str | None = None
    active_repo: str | None = None
    # instance objects
    tmp_path: str | None = None


class ObjectRecord(AdminBaseModel):
    """A document of the object store."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(alias="_id")
    type: str | None = None
    common: ObjectCommon = Field(default_factory=ObjectCommon)
    native: dict[str, Any] = Field(default_factory=dict)
    acl: AccessControl | None = None
    ts: int | float | None = None

    def with_owner(self, owner: str) -> ObjectRecord:
        """Return a copy whose ``acl.owner`` is *owner*, creating the block if needed."""
        acl = self.acl if self.acl is not None else AccessControl()
        return self.model_copy(update={"acl": acl.model_copy(update={"owner": owner})})


class StateValue(AdminBaseModel):
    """A state value as returned by the store."""

    val: Any = None
    ack: bool = False
    ts: int | float | None = None
