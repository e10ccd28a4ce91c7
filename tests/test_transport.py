from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from iotadmin._transport import AiohttpTransport
from iotadmin.config import AdminConfig
from iotadmin.exceptions import ParseError, TransientNetworkError

URL = "https://example.org/news.json"


@dataclass
class _FakeResponse:
    status: int
    body: bytes
    charset: str | None = "utf-8"

    async def read(self) -> bytes:
        return self.body

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


@dataclass
class _FakeSession:
    status: int = 200
    body: str | bytes = ""
    error: Exception | None = None
    requests: list[tuple[str, dict[str, str], aiohttp.ClientTimeout]] = field(default_factory=list)

    def get(self, url: str, *, headers: dict[str, str], timeout: aiohttp.ClientTimeout) -> _FakeResponse:
        self.requests.append((url, headers, timeout))
        if self.error is not None:
            raise self.error
        body = self.body.encode() if isinstance(self.body, str) else self.body
        return _FakeResponse(self.status, body)


def _transport(session: _FakeSession) -> AiohttpTransport:
    return AiohttpTransport(AdminConfig(http_timeout=7.5), session)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_get_json_decodes_body() -> None:
    session = _FakeSession(body='{"hash": "abc"}')

    assert await _transport(session).get_json(URL) == {"hash": "abc"}

    url, headers, timeout = session.requests[0]
    assert url == URL
    assert headers["accept"] == "application/json"
    assert timeout.total == 7.5


@pytest.mark.asyncio
async def test_non_200_maps_to_transient_error() -> None:
    session = _FakeSession(status=503, body="maintenance")

    with pytest.raises(TransientNetworkError) as exc_info:
        await _transport(session).get_json(URL)

    assert exc_info.value.status_code == 503
    assert exc_info.value.url == URL


@pytest.mark.asyncio
async def test_client_error_maps_to_transient_error() -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("refused"))

    with pytest.raises(TransientNetworkError):
        await _transport(session).get_json(URL)


@pytest.mark.asyncio
async def test_timeout_maps_to_transient_error() -> None:
    session = _FakeSession(error=TimeoutError())

    with pytest.raises(TransientNetworkError):
        await _transport(session).get_json(URL)


@pytest.mark.asyncio
async def test_empty_body_is_transient() -> None:
    with pytest.raises(TransientNetworkError):
        await _transport(_FakeSession(body="  ")).get_json(URL)


@pytest.mark.asyncio
async def test_invalid_json_is_parse_error() -> None:
    with pytest.raises(ParseError) as exc_info:
        await _transport(_FakeSession(body="<html>")).get_json(URL)

    assert exc_info.value.url == URL


@pytest.mark.asyncio
async def test_undecodable_body_is_parse_error() -> None:
    with pytest.raises(ParseError) as exc_info:
        await _transport(_FakeSession(body=b"\xff\xfe{}")).get_json(URL)

    assert exc_info.value.url == URL
