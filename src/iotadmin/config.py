"""Service configuration for iotadmin."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from iotadmin._constants import NEWS_HASH_URL, NEWS_URL, ONE_DAY_S, RATING_URL, USER_ID_PREFIX
from iotadmin.exceptions import AdminConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def normalize_user_id(user: str | None) -> str:
    """Return the fully qualified ``system.user.*`` id for *user*.

    ``None`` and empty strings resolve to the built-in ``admin`` user.
    """
    name = (user or "").strip() or "admin"
    if name.startswith(USER_ID_PREFIX):
        return name
    return f"{USER_ID_PREFIX}{name}"


@dataclasses.dataclass(frozen=True)
class AdminConfig:
    """Service configuration.

    Parameters
    ----------
    namespace : str
        Object namespace of this admin instance (e.g. ``"admin.0"``).
        Published states live below it.
    default_user : str
        Identity that rights propagation writes into ``acl.owner``.
        A bare name is expanded to ``system.user.<name>``.
    auto_update_hours : int
        Repository refresh interval in hours.  ``0`` disables periodic
        refreshes entirely.
    access_apply_rights : bool
        Propagate ownership of allowed objects to ``default_user``.
    access_limit : bool
        Access to tabs/configs is limited to the allowed lists.
    auth : bool
        Authentication is enabled (rights propagation is then skipped).
    access_allowed_configs : tuple of str
        Adapter names whose ``system.adapter.<name>`` objects are reowned.
    access_allowed_tabs : tuple of str
        Tab ids whose backing object trees are reowned.
    news_hash_url, news_url : str
        News feed endpoints.
    rating_url : str
        Ratings endpoint, templated with ``{uuid}``.
    http_timeout : float
        Total timeout for a single HTTP request in seconds.
    update_debounce : float
        Seconds of quiet before a recompute runs after repository or
        adapter descriptor changes.
    news_interval : float
        Seconds between news polls.
    news_retention_days : int
        News items older than this are pruned.
    ratings_interval : float
        Seconds between ratings refreshes.
    """

    namespace: str = "admin.0"
    default_user: str = "system.user.admin"
    auto_update_hours: int = 24
    access_apply_rights: bool = False
    access_limit: bool = False
    auth: bool = False
    access_allowed_configs: tuple[str, ...] = ()
    access_allowed_tabs: tuple[str, ...] = ()
    news_hash_url: str = NEWS_HASH_URL
    news_url: str = NEWS_URL
    rating_url: str = RATING_URL
    http_timeout: float = 30.0
    update_debounce: float = 5.0
    news_interval: float = ONE_DAY_S + 0.001
    news_retention_days: int = 180
    ratings_interval: float = ONE_DAY_S

    def __post_init__(self) -> None:
        object.__setattr__(self, "default_user", normalize_user_id(self.default_user))
        if self.auto_update_hours < 0:
            raise AdminConfigError(f"auto_update_hours must be >= 0, got {self.auto_update_hours}")
        if "{uuid}" not in self.rating_url:
            raise AdminConfigError("rating_url must contain a '{uuid}' placeholder")

    def state_id(self, relative_id: str) -> str:
        """Return the absolute id of a state below :attr:`namespace`."""
        return f"{self.namespace}.{relative_id}"

    @classmethod
    def from_env(cls, **overrides: Any) -> AdminConfig:
        """Create configuration from environment variables.

        Reads optional ``IOTADMIN_*`` variables.  Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        AdminConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "IOTADMIN_NAMESPACE": "namespace",
            "IOTADMIN_DEFAULT_USER": "default_user",
            "IOTADMIN_NEWS_HASH_URL": "news_hash_url",
            "IOTADMIN_NEWS_URL": "news_url",
            "IOTADMIN_RATING_URL": "rating_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Free-text setting; anything non-numeric disables polling.
        auto_update_env = env.get("IOTADMIN_AUTO_UPDATE")
        if auto_update_env is not None and "auto_update_hours" not in overrides:
            try:
                config_kwargs["auto_update_hours"] = int(auto_update_env)
            except ValueError:
                config_kwargs["auto_update_hours"] = 0

        for env_key, field_name in (
            ("IOTADMIN_ACCESS_APPLY_RIGHTS", "access_apply_rights"),
            ("IOTADMIN_ACCESS_LIMIT", "access_limit"),
            ("IOTADMIN_AUTH", "auth"),
        ):
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), False)

        for env_key, field_name in (
            ("IOTADMIN_ACCESS_ALLOWED_CONFIGS", "access_allowed_configs"),
            ("IOTADMIN_ACCESS_ALLOWED_TABS", "access_allowed_tabs"),
        ):
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_list(val)

        timeout_env = env.get("IOTADMIN_HTTP_TIMEOUT")
        if timeout_env is not None and "http_timeout" not in overrides:
            config_kwargs["http_timeout"] = float(timeout_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
