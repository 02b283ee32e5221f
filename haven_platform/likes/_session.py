# haven_platform/likes/_session.py
# binds the liked-set reconciler to the current user identity.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from _logging import log as _root_log

from ._cache_payload import LIKED_CACHE_KEY
from ._logging import Emitter
from ._reconciler import LikedSetReconciler
from ._types import KeyValueCache

__all__ = ["SessionBinder"]

_log = _root_log.child("SESSION")


class SessionBinder:
    """
    One reconciler per identity. Leaving an identity drains its ledger right away
    and sends it in the background, so a slow remote never holds up the switch.
    Background sends are best effort: they are lost if the process exits first.
    """

    def __init__(
        self,
        factory: Callable[[str], LikedSetReconciler],
        cache: KeyValueCache,
        *,
        teardown_grace: float = 0.0,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self._factory = factory
        self.cache = cache
        self.teardown_grace = max(0.0, float(teardown_grace))
        self.emitter = Emitter(on_progress)
        self._user_id: str | None = None
        self._reconciler: LikedSetReconciler | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def reconciler(self) -> LikedSetReconciler | None:
        return self._reconciler

    @property
    def background(self) -> int:
        return len(self._tasks)

    async def bind(self, user_id: str | None) -> None:
        uid = str(user_id).strip() if user_id is not None else ""
        new_id = uid or None
        if new_id == self._user_id:
            return

        prev = self._user_id
        if self._reconciler is not None:
            self._retire(self._reconciler)
        self._reconciler = None
        self._user_id = new_id
        self.emitter.emit("session:bind", user=new_id, prev=prev)

        if new_id is None:
            try:
                self.cache.delete(LIKED_CACHE_KEY)
            except Exception as e:
                _log.error(f"clearing cached likes failed: {e}")
            _log.info(f"signed out {prev}")
            return

        rec = self._factory(new_id)
        self._reconciler = rec
        _log.info(f"signed in {new_id}" + (f" (was {prev})" if prev else ""))
        await rec.load()

    def _track(self, aw: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(aw)
        self._tasks.add(task)
        task.add_done_callback(self._done)

    def _retire(self, rec: LikedSetReconciler) -> None:
        # a flush the timer already started is not in the ledger any more
        if rec.sending:
            self._track(rec.wait_idle())
        batch = rec.drain_pending()
        if not batch.empty or batch.waiters:
            self._track(rec.send_batch(batch))
        rec.dispose()

    def _done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _log.error(f"background flush failed: {exc!r}")
            return
        report = task.result()
        if report is not None and not report.ok:
            _log.warn(f"background flush left {len(report.failed_adds) + len(report.failed_removes)} change(s) unsynced")

    async def wait_background(self, timeout: float | None = None) -> bool:
        """True once every background flush finished within the timeout."""
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return not pending

    async def close(self, grace: float | None = None) -> None:
        rec = self._reconciler
        self._reconciler = None
        self._user_id = None
        if rec is not None:
            self._retire(rec)
        g = self.teardown_grace if grace is None else max(0.0, float(grace))
        if g > 0 and not await self.wait_background(g):
            _log.warn(f"{len(self._tasks)} flush(es) still running at shutdown")
