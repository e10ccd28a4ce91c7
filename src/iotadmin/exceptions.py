"""Custom exception hierarchy for iotadmin."""

from __future__ import annotations


class AdminError(Exception):
    """Base exception for all iotadmin errors."""


class AdminConfigError(AdminError):
    """Invalid local configuration value."""


class ConfigurationUnavailable(AdminError):
    """A required configuration object is missing or malformed.

    Raised by the update engine when the active repository cannot be
    resolved from ``system.config`` / ``system.repositories``.  The current
    cycle is aborted; the next periodic trigger tries again.
    """


class TransientNetworkError(AdminError):
    """HTTP-level failure (network, timeout, non-200)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class ParseError(AdminError):
    """Remote payload could not be decoded into the expected shape."""

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class HostPermissionError(AdminError):
    """The host environment denied the requested action."""


class StoreError(AdminError):
    """Object-store call failed."""

    def __init__(self, message: str, *, object_id: str = "") -> None:
        self.object_id = object_id
        super().__init__(message)


class StoreReadError(StoreError):
    """Reading an object or state from the store failed."""


class StoreWriteError(StoreError):
    """Writing an object or state to the store failed.

    The store offers no transaction across ids; callers log the failure
    for the affected id and carry on with independent writes.
    """
