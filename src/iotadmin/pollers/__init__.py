"""Periodic pollers.

Each poller owns exactly one :class:`iotadmin._timer.RearmableTimer` and
reschedules itself after every cycle, successful or not.
"""

from iotadmin.pollers.news import NewsPoller, merge_news
from iotadmin.pollers.ratings import RatingsPoller
from iotadmin.pollers.repository import RepositoryPoller

__all__ = ["NewsPoller", "RatingsPoller", "RepositoryPoller", "merge_news"]
