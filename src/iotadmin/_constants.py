"""Internal constants shared across the library."""

import re

USER_AGENT = "iotadmin/1 (+aiohttp)"

ONE_DAY_S = 24 * 3600.0

# ------------------------------------------------------------------
# Well-known object ids
# ------------------------------------------------------------------

SYSTEM_CONFIG_ID = "system.config"
SYSTEM_REPOSITORIES_ID = "system.repositories"
META_UUID_ID = "system.meta.uuid"
ADMIN_USER_ID = "system.user.admin"
USER_ID_PREFIX = "system.user."

#: Adapter descriptors (``system.adapter.<name>``, no instance number).
ADAPTER_DESCRIPTOR_RE = re.compile(r"^system\.adapter\.[^.]+$")

#: Adapter instances (``system.adapter.<name>.<n>``).
ADAPTER_INSTANCE_RE = re.compile(r"^system\.adapter\.[^.]+\.\d+$")

# ------------------------------------------------------------------
# Published state ids (relative to the adapter namespace)
# ------------------------------------------------------------------

STATE_UPDATES_NUMBER = "info.updatesNumber"
STATE_UPDATES_LIST = "info.updatesList"
STATE_NEW_UPDATES = "info.newUpdates"
STATE_UPDATES_JSON = "info.updatesJson"
STATE_LAST_UPDATE_CHECK = "info.lastUpdateCheck"
STATE_NEWS_FEED = "info.newsFeed"
STATE_NEWS_ETAG = "info.newsETag"
STATE_NEWS_LAST_ID = "info.newsLastId"

# ------------------------------------------------------------------
# Remote endpoints
# ------------------------------------------------------------------

NEWS_HASH_URL = "https://iobroker.live/repo/news-hash.json"
NEWS_URL = "https://iobroker.live/repo/news.json"
RATING_URL = "https://rating.iobroker.net/rating?uuid={uuid}"

#: Reply the host sends instead of a repository when access is denied.
ERROR_PERMISSION = "permissionError"

# ------------------------------------------------------------------
# Rights propagation: allowed tab prefix -> (object tree, object types)
# ------------------------------------------------------------------

TAB_OBJECT_TREES: dict[str, tuple[str, tuple[str, ...]]] = {
    "devices.": ("alias", ("state", "channel")),
    "javascript.": ("javascript", ("script", "channel")),
    "fullcalendar.": ("fullcalendar", ("schedule",)),
    "scenes.": ("scenes", ("state", "channel")),
}
