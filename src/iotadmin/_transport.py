"""HTTP transport for the remote content endpoints (news, ratings)."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from iotadmin._constants import USER_AGENT
from iotadmin.config import AdminConfig
from iotadmin.exceptions import ParseError, TransientNetworkError

_logger = logging.getLogger(__name__)


class HttpTransport(Protocol):
    """Structural transport interface used by the pollers.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`AiohttpTransport`) concrete.
    """

    async def get_json(self, url: str) -> Any: ...


class AiohttpTransport:
    """Plain JSON-over-GET transport on a shared ``aiohttp`` session."""

    def __init__(self, config: AdminConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def get_json(self, url: str) -> Any:
        """GET *url* and decode the body as JSON.

        Raises
        ------
        TransientNetworkError
            Connection failure, timeout, non-200 status or empty body.
        ParseError
            The body cannot be decoded or is not valid JSON.
        """
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        timeout = aiohttp.ClientTimeout(total=self._config.http_timeout)

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers, timeout=timeout) as resp:
                body = await resp.read()
                if resp.status != 200:
                    raise TransientNetworkError(
                        f"HTTP {resp.status} from {url}: {body[:200].decode('utf-8', errors='replace')}",
                        status_code=resp.status,
                        url=url,
                    )
        except TransientNetworkError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TransientNetworkError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            text = body.decode(resp.charset or "utf-8")
        except (UnicodeDecodeError, LookupError) as exc:
            raise ParseError(f"Undecodable body from {url}", url=url) from exc

        if not text.strip():
            raise TransientNetworkError(f"Empty body from {url}", status_code=200, url=url)

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid JSON from {url}: {text[:64]}", url=url) from exc
