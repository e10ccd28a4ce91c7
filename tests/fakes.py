"""In-memory collaborators shared by the test modules."""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from iotadmin.exceptions import HostPermissionError, StoreWriteError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@dataclass
class FakeStore:
    objects: dict[str, dict[str, Any]] = field(default_factory=dict)
    states: dict[str, dict[str, Any]] = field(default_factory=dict)
    object_writes: list[str] = field(default_factory=list)
    state_writes: list[tuple[str, Any]] = field(default_factory=list)
    fail_object_writes: set[str] = field(default_factory=set)
    fail_state_writes: set[str] = field(default_factory=set)
    write_delay: float = 0.0
    in_flight: int = 0
    max_in_flight: int = 0

    def add_object(self, object_id: str, **document: Any) -> None:
        self.objects[object_id] = {"_id": object_id, **document}

    async def get_object(self, object_id: str) -> Mapping[str, Any] | None:
        doc = self.objects.get(object_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set_object(self, object_id: str, document: Mapping[str, Any]) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.write_delay)
            if object_id in self.fail_object_writes:
                raise StoreWriteError(f"cannot write {object_id}", object_id=object_id)
            self.objects[object_id] = copy.deepcopy(dict(document))
            self.object_writes.append(object_id)
        finally:
            self.in_flight -= 1

    async def get_objects_by_prefix(self, prefix: str) -> list[Mapping[str, Any]]:
        return [copy.deepcopy(doc) for object_id, doc in self.objects.items() if object_id.startswith(prefix)]

    async def get_state(self, state_id: str) -> Mapping[str, Any] | None:
        state = self.states.get(state_id)
        return dict(state) if state is not None else None

    async def set_state(self, state_id: str, value: Any, *, ack: bool = True) -> None:
        if state_id in self.fail_state_writes:
            raise StoreWriteError(f"cannot write {state_id}", object_id=state_id)
        self.states[state_id] = {"val": value, "ack": ack}
        self.state_writes.append((state_id, value))

    def value(self, state_id: str) -> Any:
        return self.states[state_id]["val"]

    def writes_to(self, state_id: str) -> int:
        return sum(1 for written_id, _ in self.state_writes if written_id == state_id)


@dataclass
class FakeHost:
    installed: dict[str, Any] = field(default_factory=dict)
    refresh_reply: Any = None
    deny_refresh: bool = False
    refresh_calls: list[str] = field(default_factory=list)

    async def get_installed_versions(self) -> Mapping[str, Any]:
        return copy.deepcopy(self.installed)

    async def request_repository_refresh(self, repo_name: str) -> Any:
        self.refresh_calls.append(repo_name)
        if self.deny_refresh:
            raise HostPermissionError(f"refresh of {repo_name} denied")
        return self.refresh_reply


@dataclass
class FakeTransport:
    responses: dict[str, Any] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def get_json(self, url: str) -> Any:
        self.calls.append(url)
        if url not in self.responses:
            raise AssertionError(f"Unexpected URL in fake transport: {url}")
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)
