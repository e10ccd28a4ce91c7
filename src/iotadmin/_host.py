"""Host-environment collaborator interface."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class HostEnvironment(Protocol):
    """Controller process that owns installed components and repositories.

    ``request_repository_refresh`` raises
    :class:`iotadmin.exceptions.HostPermissionError` when the controller
    refuses the request.
    """

    async def get_installed_versions(self) -> Mapping[str, Any]: ...

    async def request_repository_refresh(self, repo_name: str) -> Any: ...
