# haven_platform/likes/_ledger.py
# pending add/remove ledger between remote flushes.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from collections.abc import Iterable


class PendingLedger:
    """
    Ids changed locally since the last drain.

    The two sides are disjoint. Staging the opposite of a change that is still
    pending cancels it, since the remote never saw the first one.
    """

    def __init__(self) -> None:
        self.pending_adds: set[str] = set()
        self.pending_removes: set[str] = set()

    def __len__(self) -> int:
        return len(self.pending_adds) + len(self.pending_removes)

    def __bool__(self) -> bool:
        return bool(self.pending_adds or self.pending_removes)

    def stage_add(self, listing_id: str) -> None:
        if listing_id in self.pending_removes:
            self.pending_removes.discard(listing_id)
        else:
            self.pending_adds.add(listing_id)

    def stage_remove(self, listing_id: str) -> None:
        if listing_id in self.pending_adds:
            self.pending_adds.discard(listing_id)
        else:
            self.pending_removes.add(listing_id)

    def stage(self, listing_id: str, liked: bool) -> None:
        if liked:
            self.stage_add(listing_id)
        else:
            self.stage_remove(listing_id)

    def merge(self, added: Iterable[str], removed: Iterable[str]) -> None:
        for i in added:
            self.stage_add(i)
        for i in removed:
            self.stage_remove(i)

    def drain(self) -> tuple[tuple[str, ...], tuple[str, ...]]:
        adds = tuple(sorted(self.pending_adds))
        removes = tuple(sorted(self.pending_removes))
        self.pending_adds = set()
        self.pending_removes = set()
        return adds, removes

    def clear(self) -> None:
        self.pending_adds = set()
        self.pending_removes = set()

    def snapshot(self) -> dict[str, list[str]]:
        return {"adds": sorted(self.pending_adds), "removes": sorted(self.pending_removes)}
