# haven_platform/likes/_reconciler.py
# liked-set reconciler: optimistic local state, cache mirror, batched remote sync.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any, Union

from _logging import log as _root_log

from ..config_base import LikesSettings
from ._cache_payload import LIKED_CACHE_KEY, encode_liked
from ._dispatcher import DebouncedDispatcher
from ._ledger import PendingLedger
from ._logging import Emitter
from ._types import FlushReport, KeyValueCache, PendingBatch, RemoteStore, invoke

__all__ = ["LikedSetReconciler"]

_log = _root_log.child("LIKES")

SetOrUpdater = Union[Iterable[str], Callable[[frozenset[str]], Iterable[str]]]


class LikedSetReconciler:
    """
    Owns one user's liked set for one session.

    Every membership change is applied to memory and mirrored to the cache before
    anything is awaited, then staged in the ledger for the next debounced flush.
    The baseline moves with each staged change; a failed toggle moves it back.
    """

    def __init__(
        self,
        remote: RemoteStore,
        cache: KeyValueCache,
        user_id: str | None,
        *,
        settings: LikesSettings | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.settings = settings or LikesSettings()
        self.emitter = Emitter(on_progress)
        self.emit = self.emitter.emit

        self._user_id = str(user_id) if user_id else None
        self._liked: set[str] = set()
        self._baseline: set[str] = set()
        self._ledger = PendingLedger()
        self._waiters: dict[str, list[asyncio.Future]] = {}
        self._gen: dict[str, int] = {}
        self._epoch = 0
        self._send_lock = asyncio.Lock()
        self._dispatcher = DebouncedDispatcher(self.settings.debounce_sec, self._flush_scheduled)

        self._loading = False
        self._loaded = False
        self._disposed = False
        self.flush_count = 0

    # --- read side --------------------------------------------------------
    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def liked_ids(self) -> frozenset[str]:
        return frozenset(self._liked)

    @property
    def liked_count(self) -> int:
        return len(self._liked)

    @property
    def baseline(self) -> frozenset[str]:
        return frozenset(self._baseline)

    @property
    def pending(self) -> dict[str, list[str]]:
        return self._ledger.snapshot()

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def flush_scheduled(self) -> bool:
        return self._dispatcher.pending

    @property
    def sending(self) -> bool:
        return self._dispatcher.busy or self._send_lock.locked()

    def is_liked(self, listing_id: str) -> bool:
        return listing_id in self._liked

    # --- local state ------------------------------------------------------
    def _mirror(self) -> None:
        try:
            self.cache.set(LIKED_CACHE_KEY, encode_liked(self._liked, self._user_id))
        except Exception as e:
            _log.error(f"cache mirror failed: {e}")

    def _set_membership(self, listing_id: str, liked: bool) -> None:
        if liked:
            self._liked.add(listing_id)
            self._baseline.add(listing_id)
        else:
            self._liked.discard(listing_id)
            self._baseline.discard(listing_id)
        self._mirror()

    def _bump(self, listing_id: str) -> int:
        n = self._gen.get(listing_id, 0) + 1
        self._gen[listing_id] = n
        return n

    def _is_current(self, listing_id: str, gen: int, epoch: int) -> bool:
        return not self._disposed and epoch == self._epoch and self._gen.get(listing_id) == gen

    # --- mutations --------------------------------------------------------
    async def toggle(self, listing_id: str) -> bool:
        listing_id = str(listing_id)
        if not self._user_id or self._disposed:
            return False

        was = listing_id in self._liked
        gen = self._bump(listing_id)
        epoch = self._epoch
        self._set_membership(listing_id, not was)
        self._ledger.stage(listing_id, not was)

        fut = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(listing_id, []).append(fut)
        self._dispatcher.schedule()

        ok = bool(await fut)
        if not ok and self._is_current(listing_id, gen, epoch):
            self._set_membership(listing_id, was)
            self.emit("likes:revert", id=listing_id, liked=was)
            _log.warn(f"{'unlike' if was else 'like'} {listing_id} rejected by remote; reverted")
        return ok

    def replace_all(self, new_ids: SetOrUpdater) -> None:
        self._replace(new_ids, guard=self.settings.guard_empty_replace)

    def _replace(self, new_ids: SetOrUpdater, *, guard: bool) -> None:
        if not self._user_id or self._disposed:
            _log.debug("replace_all without a session; ignored")
            return

        raw = new_ids(frozenset(self._liked)) if callable(new_ids) else new_ids
        new = {str(x) for x in raw}
        added = new - self._baseline
        removed = self._baseline - new

        if guard and self._baseline and not new:
            _log.warn(f"ignoring bulk replace that would drop all {len(self._baseline)} likes")
            return
        if not added and not removed:
            return

        self._ledger.merge(added, removed)
        for i in added | removed:
            self._bump(i)
        self._liked = set(new)
        self._baseline = set(new)
        self._mirror()

        self.emit("likes:queue", added=len(added), removed=len(removed))
        _log.debug(f"queued {len(added)} add(s) and {len(removed)} remove(s)")
        self._dispatcher.schedule()

    async def clear_all(self) -> FlushReport:
        self._replace(set(), guard=False)
        return await self.flush_now()

    # --- remote sync ------------------------------------------------------
    def drain_pending(self) -> PendingBatch:
        adds, removes = self._ledger.drain()
        waiters, self._waiters = self._waiters, {}
        return PendingBatch(adds=adds, removes=removes, waiters=waiters)

    async def send_batch(self, batch: PendingBatch) -> FlushReport:
        sent = set(batch.adds) | set(batch.removes)
        outcome: dict[str, bool] = {}
        report = FlushReport()
        try:
            if batch.empty:
                return report
            report = await self._send(batch, outcome)
            return report
        finally:
            # net-zero toggles never reached the remote, so they stand as they are
            for listing_id, futs in batch.waiters.items():
                ok = outcome.get(listing_id, False) if listing_id in sent else True
                for fut in futs:
                    if not fut.done():
                        fut.set_result(ok)

    async def _send(self, batch: PendingBatch, outcome: dict[str, bool]) -> FlushReport:
        uid = self._user_id
        async with self._send_lock:
            self.flush_count += 1
            self.emit("likes:flush:start", user=uid, adds=list(batch.adds), removes=list(batch.removes))
            calls = [invoke(self.remote.add_liked, uid, i) for i in batch.adds]
            calls += [invoke(self.remote.remove_liked, uid, i) for i in batch.removes]
            results = await asyncio.gather(*calls, return_exceptions=True)

        failed_adds: list[str] = []
        failed_removes: list[str] = []
        for n, res in enumerate(results):
            is_add = n < len(batch.adds)
            listing_id = batch.adds[n] if is_add else batch.removes[n - len(batch.adds)]
            ok = bool(res) and not isinstance(res, BaseException)
            outcome[listing_id] = ok
            if ok:
                continue
            (failed_adds if is_add else failed_removes).append(listing_id)
            if isinstance(res, BaseException):
                _log.error(f"failed to {'add' if is_add else 'remove'} {listing_id}: {res!r}")

        report = FlushReport(
            adds=batch.adds,
            removes=batch.removes,
            failed_adds=tuple(failed_adds),
            failed_removes=tuple(failed_removes),
        )
        if report.ok:
            _log.debug(f"flushed {len(batch.adds)} add(s), {len(batch.removes)} remove(s)")
        else:
            _log.warn(
                f"partial flush failure: {len(failed_adds)}/{len(batch.adds)} add(s), "
                f"{len(failed_removes)}/{len(batch.removes)} remove(s) rejected"
            )
        self.emit("likes:flush", user=uid, **report.as_dict())
        return report

    async def _flush_scheduled(self) -> None:
        await self.send_batch(self.drain_pending())

    async def flush_now(self) -> FlushReport:
        self._dispatcher.cancel()
        return await self.send_batch(self.drain_pending())

    async def wait_idle(self) -> None:
        """Wait until no batch is on its way to the remote."""
        await self._dispatcher.wait_idle()
        async with self._send_lock:
            pass

    async def load(self) -> None:
        if self._disposed:
            return
        uid = self._user_id
        if not uid:
            self._liked = set()
            self._baseline = set()
            self._ledger.clear()
            try:
                self.cache.delete(LIKED_CACHE_KEY)
            except Exception as e:
                _log.error(f"cache delete failed: {e}")
            self._loaded = True
            return

        # outcomes of changes made before this point are superseded by the fetch
        self._epoch += 1
        if self._ledger or self._dispatcher.pending:
            if self.settings.flush_before_load:
                await self.flush_now()
            else:
                self._discard_pending()
        # a batch the timer already drained must land before the fetch reads the remote
        await self.wait_idle()

        self._loading = True
        try:
            ids: Any = await asyncio.wait_for(
                invoke(self.remote.fetch_liked_ids, uid),
                timeout=self.settings.load_timeout_sec,
            )
        except asyncio.TimeoutError:
            _log.warn(f"loading liked listings exceeded {self.settings.load_timeout_sec:g}s")
            ids = []
        except Exception as e:
            _log.error(f"loading liked listings failed: {e!r}")
            ids = []
        finally:
            self._loading = False

        if self._disposed or self._user_id != uid:
            return
        fresh = {str(i) for i in (ids or ()) if i}
        # changes staged while the fetch was in flight still go out; keep them visible
        fresh |= self._ledger.pending_adds
        fresh -= self._ledger.pending_removes
        self._liked = fresh
        self._baseline = set(fresh)
        self._mirror()
        self._loaded = True
        self.emit("likes:load", user=uid, count=len(fresh))
        _log.info(f"loaded {len(fresh)} liked listing(s)")

    async def reload(self) -> None:
        await self.load()

    def _discard_pending(self) -> None:
        self._dispatcher.cancel()
        batch = self.drain_pending()
        if not batch.empty:
            _log.warn(f"dropping {len(batch.adds) + len(batch.removes)} unsynced change(s)")
        for futs in batch.waiters.values():
            for fut in futs:
                if not fut.done():
                    fut.set_result(False)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._dispatcher.close()
        self._discard_pending()
        self._liked = set()
        self._baseline = set()
        self._ledger.clear()
