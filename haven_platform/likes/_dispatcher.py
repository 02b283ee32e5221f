# haven_platform/likes/_dispatcher.py
# trailing-edge debounce for liked-listing flushes.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any, Callable

from _logging import log as _root_log

_log = _root_log.child("LIKES")


class DebouncedDispatcher:
    """
    At most one timer exists at a time. Every schedule() replaces it, so only the
    trailing edge of a burst fires. cancel() suppresses the timer only; a flush
    that already started keeps running.
    """

    def __init__(self, delay: float, on_fire: Callable[[], Awaitable[Any]]) -> None:
        if delay <= 0:
            raise ValueError(f"debounce delay must be positive, got {delay}")
        self.delay = float(delay)
        self._on_fire = on_fire
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def busy(self) -> bool:
        return bool(self._tasks)

    def schedule(self) -> None:
        if self._closed:
            return
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def close(self) -> None:
        self.cancel()
        self._closed = True

    async def wait_idle(self) -> None:
        """Wait for flushes started by the timer (not for a timer that has yet to fire)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._on_fire())
        self._tasks.add(task)
        task.add_done_callback(self._done)

    def _done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _log.error(f"scheduled flush failed: {exc!r}")
