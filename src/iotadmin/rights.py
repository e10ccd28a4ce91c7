"""Serialized ownership propagation.

The object store gives no transactional guarantee across overlapping writes
to the same id, so ownership rewrites go through one queue with exactly one
consumer: a write is issued only after the previous one completed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import ValidationError

from iotadmin._constants import ADMIN_USER_ID, TAB_OBJECT_TREES
from iotadmin._store import ObjectStore, coerce_record, fetch_record
from iotadmin.config import AdminConfig
from iotadmin.exceptions import StoreError
from iotadmin.models.objects import AccessControl, ObjectRecord

_logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 1024


@dataclass(frozen=True, slots=True)
class RightsTask:
    """One record whose owner may need rewriting."""

    object_id: str
    record: ObjectRecord

    @property
    def acl(self) -> AccessControl | None:
        return self.record.acl


class RightsTaskQueue:
    """FIFO of :class:`RightsTask` drained by a single worker task.

    Queued tasks that have not started when :meth:`close` is called are
    discarded; this is a best-effort background job, not a durable queue.
    """

    def __init__(
        self,
        config: AdminConfig,
        store: ObjectStore,
        *,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> None:
        self._config = config
        self._store = store
        self._queue: asyncio.Queue[RightsTask] = asyncio.Queue(maxsize=max_pending)
        self._worker: asyncio.Task[None] | None = None
        self._current: RightsTask | None = None
        self._batch_written = 0
        self.written = 0
        self.skipped = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        """Whether a task is being processed right now."""
        return self._current is not None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    async def put(self, task: RightsTask) -> None:
        self._ensure_worker()
        await self._queue.put(task)

    async def enqueue_matching(self, pattern: str, types: str | Iterable[str]) -> int:
        """Queue every record below ``pattern.`` whose type is in *types*.

        Returns the number of queued tasks.
        """
        wanted = {types} if isinstance(types, str) else set(types)
        try:
            documents = await self._store.get_objects_by_prefix(f"{pattern}.")
        except StoreError as exc:
            _logger.warning("Cannot list objects below %s: %s", pattern, exc)
            return 0

        queued = 0
        for document in documents:
            object_id = str(document.get("_id", ""))
            if not object_id:
                continue
            try:
                record = coerce_record(object_id, document)
            except ValidationError:
                _logger.debug("Skipping malformed object %s", object_id, exc_info=True)
                continue
            if record.type not in wanted:
                continue
            await self.put(RightsTask(object_id=record.id, record=record))
            queued += 1
        _logger.debug("Queued %d %s object(s) below %s", queued, "/".join(sorted(wanted)), pattern)
        return queued

    async def enqueue_object(self, object_id: str) -> bool:
        """Queue a single object if it exists."""
        try:
            record = await fetch_record(self._store, object_id)
        except StoreError as exc:
            _logger.warning("Cannot read %s: %s", object_id, exc)
            return False
        if record is None:
            return False
        await self.put(RightsTask(object_id=object_id, record=record))
        return True

    async def apply_access_rights(self) -> int:
        """Reown the objects behind the allowed configs and tabs.

        Only active when rights propagation is enabled, access is limited,
        authentication is off and the default user is not the built-in admin.
        Returns the number of queued tasks.
        """
        config = self._config
        if not (
            config.access_apply_rights
            and config.access_limit
            and not config.auth
            and config.default_user != ADMIN_USER_ID
        ):
            return 0

        queued = 0
        for name in config.access_allowed_configs:
            if await self.enqueue_object(f"system.adapter.{name}"):
                queued += 1

        for tab in config.access_allowed_tabs:
            for prefix, (tree, types) in TAB_OBJECT_TREES.items():
                if tab.startswith(prefix):
                    queued += await self.enqueue_matching(tree, types)
                    break
        return queued

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    async def join(self) -> None:
        """Wait until every queued task has been processed."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop the worker and discard tasks that have not started."""
        worker = self._worker
        self._worker = None
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker

        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            discarded += 1
        if discarded:
            _logger.debug("Discarded %d pending rights task(s)", discarded)

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run(), name="iotadmin-rights")

    async def _run(self) -> None:
        while True:
            task = await self._queue.get()
            self._current = task
            try:
                await self._process(task)
            except Exception:
                self.failed += 1
                _logger.exception("Rights task for %s failed", task.object_id)
            finally:
                self._current = None
                self._queue.task_done()

            if self._queue.empty() and self._batch_written:
                _logger.info("Updated %d objects", self._batch_written)
                self._batch_written = 0

    async def _process(self, task: RightsTask) -> None:
        owner = self._config.default_user
        if task.acl is not None and task.acl.owner == owner:
            self.skipped += 1
            return

        updated = task.record.with_owner(owner)
        try:
            await self._store.set_object(task.object_id, updated.to_document())
        except StoreError as exc:
            self.failed += 1
            _logger.warning("Cannot update owner of %s: %s", task.object_id, exc)
            return
        self.written += 1
        self._batch_written += 1
