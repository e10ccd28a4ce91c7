"""iotadmin - Async core of a home-automation administration service."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("iotadmin")
except PackageNotFoundError:
    __version__ = "0+local"
from iotadmin.config import AdminConfig
from iotadmin.exceptions import (
    AdminConfigError,
    AdminError,
    ConfigurationUnavailable,
    HostPermissionError,
    ParseError,
    StoreError,
    StoreReadError,
    StoreWriteError,
    TransientNetworkError,
)
from iotadmin.mirror import ObjectChange, ObjectMirror
from iotadmin.models import ObjectRecord, RepositorySnapshot, UpdateDetail, UpdateReport
from iotadmin.pollers import NewsPoller, RatingsPoller, RepositoryPoller
from iotadmin.rights import RightsTask, RightsTaskQueue
from iotadmin.service import AdminService
from iotadmin.updates import UpdateEngine
from iotadmin.versions import compare_versions, is_update_available

__all__ = [
    "__version__",
    "AdminConfig",
    "AdminConfigError",
    "AdminError",
    "AdminService",
    "ConfigurationUnavailable",
    "HostPermissionError",
    "NewsPoller",
    "ObjectChange",
    "ObjectMirror",
    "ObjectRecord",
    "ParseError",
    "RatingsPoller",
    "RepositoryPoller",
    "RepositorySnapshot",
    "RightsTask",
    "RightsTaskQueue",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "TransientNetworkError",
    "UpdateDetail",
    "UpdateEngine",
    "UpdateReport",
    "compare_versions",
    "is_update_available",
]
