from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import NOW, FakeHost

from iotadmin.config import AdminConfig
from iotadmin.mirror import ObjectMirror
from iotadmin.models._base import to_epoch_ms
from iotadmin.pollers.repository import RepositoryPoller


def _mirror(*, age: timedelta | None, active: str | None = "stable") -> ObjectMirror:
    mirror = ObjectMirror(clock=lambda: NOW)
    documents: list[dict[str, object]] = [{"_id": "system.config", "type": "config", "common": {"activeRepo": active}}]
    if age is not None:
        documents.append(
            {
                "_id": "system.repositories",
                "type": "config",
                "ts": to_epoch_ms(NOW - age),
                "native": {"repositories": {"stable": {"json": {}}}},
            }
        )
    mirror.load(documents)
    return mirror


@pytest.mark.asyncio
async def test_fresh_repository_schedules_remaining_time(config: AdminConfig, host: FakeHost) -> None:
    poller = RepositoryPoller(config, host, _mirror(age=timedelta(hours=10)), clock=lambda: NOW)

    refreshed = await poller.check()

    assert refreshed is False
    assert host.refresh_calls == []
    assert poller.timer.delay == pytest.approx(14 * 3600, abs=0.01)
    await poller.close()


@pytest.mark.asyncio
async def test_stale_repository_is_refreshed(config: AdminConfig, host: FakeHost) -> None:
    poller = RepositoryPoller(config, host, _mirror(age=timedelta(hours=30)), clock=lambda: NOW)
    refreshed_names: list[str] = []
    poller.add_listener(refreshed_names.append)

    assert await poller.check() is True

    assert host.refresh_calls == ["stable"]
    assert refreshed_names == ["stable"]
    assert poller.timer.delay == pytest.approx(24 * 3600)
    await poller.close()


@pytest.mark.asyncio
async def test_missing_snapshot_is_refreshed(config: AdminConfig, host: FakeHost) -> None:
    poller = RepositoryPoller(config, host, _mirror(age=None), clock=lambda: NOW)

    assert await poller.check() is True
    assert host.refresh_calls == ["stable"]
    await poller.close()


@pytest.mark.asyncio
async def test_force_refreshes_fresh_repository(config: AdminConfig, host: FakeHost) -> None:
    poller = RepositoryPoller(config, host, _mirror(age=timedelta(hours=1)), clock=lambda: NOW)

    assert await poller.check(force=True) is True
    assert host.refresh_calls == ["stable"]
    await poller.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("deny", ["raise", "reply"])
async def test_permission_denied_is_logged_and_rescheduled(
    config: AdminConfig, host: FakeHost, caplog: pytest.LogCaptureFixture, deny: str
) -> None:
    if deny == "raise":
        host.deny_refresh = True
    else:
        host.refresh_reply = "permissionError"
    poller = RepositoryPoller(config, host, _mirror(age=timedelta(hours=30)), clock=lambda: NOW)

    assert await poller.check() is False

    assert 'May not read "getRepository"' in caplog.text
    assert poller.timer.delay == pytest.approx(24 * 3600)
    await poller.close()


@pytest.mark.asyncio
async def test_missing_active_repository_is_rescheduled(
    config: AdminConfig, host: FakeHost, caplog: pytest.LogCaptureFixture
) -> None:
    poller = RepositoryPoller(config, host, _mirror(age=timedelta(hours=30), active=None), clock=lambda: NOW)

    assert await poller.check() is False
    assert host.refresh_calls == []
    assert 'May not read "system.config"' in caplog.text
    assert poller.timer.armed
    await poller.close()


@pytest.mark.asyncio
async def test_zero_interval_never_reschedules(host: FakeHost) -> None:
    config = AdminConfig(auto_update_hours=0)
    poller = RepositoryPoller(config, host, _mirror(age=timedelta(hours=30)), clock=lambda: NOW)

    poller.start()
    assert not poller.timer.armed

    assert await poller.check(force=True) is True
    assert host.refresh_calls == ["stable"]
    assert not poller.timer.armed
