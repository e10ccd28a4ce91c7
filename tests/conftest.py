from __future__ import annotations

import pytest
from fakes import FakeHost, FakeStore, FakeTransport

from iotadmin.config import AdminConfig


@pytest.fixture
def config() -> AdminConfig:
    return AdminConfig()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
