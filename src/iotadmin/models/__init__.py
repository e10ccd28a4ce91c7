"""Pydantic models for object-store documents and derived reports."""

from iotadmin.models._base import AdminBaseModel, AdminTimestamp, parse_timestamp
from iotadmin.models.messages import MessageCondition, UpdateMessage
from iotadmin.models.news import NewsHash, NewsItem
from iotadmin.models.objects import AccessControl, ObjectCommon, ObjectRecord, StateValue
from iotadmin.models.repository import ComponentRelease, RepositorySnapshot, parse_releases
from iotadmin.models.updates import UpdateDetail, UpdateReport, parse_details_json

__all__ = [
    "AccessControl",
    "AdminBaseModel",
    "AdminTimestamp",
    "ComponentRelease",
    "MessageCondition",
    "NewsHash",
    "NewsItem",
    "ObjectCommon",
    "ObjectRecord",
    "RepositorySnapshot",
    "StateValue",
    "UpdateDetail",
    "UpdateMessage",
    "UpdateReport",
    "parse_details_json",
    "parse_releases",
    "parse_timestamp",
]
