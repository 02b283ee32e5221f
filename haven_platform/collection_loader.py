# haven_platform/collection_loader.py
# Haven - listings collection loader with bounded retries and a hard timeout.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from _logging import log as _root_log

from .config_base import LoaderSettings
from .likes._logging import Emitter
from .likes._types import RemoteStore, invoke
from .listings import Listing, listings_from_rows

__all__ = ["CollectionLoader", "LoadState"]

_log = _root_log.child("LISTINGS")


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed-after-retries"


class _Exhausted(Exception):
    pass


class _Abandoned(Exception):
    pass


class CollectionLoader:
    """
    Loads the listings collection for one consumer.

    A top-level load() while another is running is skipped, not queued. Retries
    use a fixed delay. The timeout covers the whole run, retries included, and
    always lands in a terminal state. After close() every pending continuation
    is a no-op.
    """

    def __init__(
        self,
        fetch: Callable[[], Any],
        *,
        settings: LoaderSettings | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self.settings = settings or LoaderSettings()
        self.emitter = Emitter(on_progress)
        self._listings: tuple[Listing, ...] = ()
        self._state = LoadState.IDLE
        self._in_progress = False
        self._alive = True
        self._run = 0
        self.attempts = 0
        self.last_error: str | None = None

    @classmethod
    def for_store(cls, store: RemoteStore, **kwargs: Any) -> "CollectionLoader":
        return cls(store.fetch_all_listings, **kwargs)

    @property
    def listings(self) -> tuple[Listing, ...]:
        return self._listings

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is LoadState.LOADING

    @property
    def alive(self) -> bool:
        return self._alive

    def _owns(self, run: int) -> bool:
        return self._alive and self._run == run

    async def load(self, retry_count: int = 0) -> None:
        if not self._alive:
            return
        if retry_count == 0 and self._in_progress:
            _log.debug("load already in progress; skipped")
            self.emitter.emit("listings:skip")
            return

        self._in_progress = True
        self._run += 1
        run = self._run
        self._state = LoadState.LOADING
        self.attempts = 0
        self.last_error = None

        try:
            rows = await asyncio.wait_for(self._attempts(run, retry_count), timeout=self.settings.timeout_sec)
        except asyncio.TimeoutError:
            if self._owns(run):
                self.last_error = "timeout"
                self._state = LoadState.FAILED
                _log.warn(f"listings load exceeded {self.settings.timeout_sec:g}s; giving up")
                self.emitter.emit("listings:done", state=self._state.value, count=len(self._listings), error="timeout")
            return
        except _Exhausted:
            if self._owns(run):
                self._listings = ()
                self._state = LoadState.FAILED
                _log.error(f"listings load failed after {self.attempts} attempt(s): {self.last_error}")
                self.emitter.emit("listings:done", state=self._state.value, count=0, error=self.last_error)
            return
        except _Abandoned:
            return
        finally:
            if self._run == run:
                self._in_progress = False

        if not self._owns(run):
            return
        self._listings = listings_from_rows(rows)
        self._state = LoadState.SUCCEEDED
        _log.info(f"loaded {len(self._listings)} listing(s)")
        self.emitter.emit("listings:done", state=self._state.value, count=len(self._listings), attempts=self.attempts)

    async def _attempts(self, run: int, start: int) -> Sequence[Any]:
        attempt = max(0, int(start))
        while True:
            self.attempts += 1
            self.emitter.emit("listings:attempt", attempt=attempt + 1)
            try:
                rows = await invoke(self._fetch)
            except Exception as e:
                if not self._owns(run):
                    raise _Abandoned() from e
                self.last_error = f"{type(e).__name__}: {e}"
                if attempt >= self.settings.max_retries:
                    raise _Exhausted() from e
                _log.warn(f"listings fetch failed ({self.last_error}); retry {attempt + 1}/{self.settings.max_retries}")
                attempt += 1
                await asyncio.sleep(self.settings.retry_delay_sec)
                if not self._owns(run):
                    raise _Abandoned()
                continue
            if not self._owns(run):
                raise _Abandoned()
            return rows or ()

    async def refresh(self) -> None:
        await self.load()

    def close(self) -> None:
        self._alive = False
        self._run += 1
        self._in_progress = False
        self._state = LoadState.IDLE
