# haven_platform/likes/_types.py
# types and protocols for the liked-listings engine.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Protocol


class RemoteStore(Protocol):
    def fetch_liked_ids(self, user_id: str) -> Sequence[str]: ...
    def add_liked(self, user_id: str, listing_id: str) -> bool: ...
    def remove_liked(self, user_id: str, listing_id: str) -> bool: ...
    def fetch_all_listings(self) -> Sequence[Mapping[str, Any]]: ...


class KeyValueCache(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


@dataclass
class PendingBatch:
    """A drained ledger plus the toggles waiting on it."""

    adds: tuple[str, ...] = ()
    removes: tuple[str, ...] = ()
    waiters: dict[str, list[asyncio.Future]] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.adds and not self.removes


@dataclass(frozen=True)
class FlushReport:
    adds: tuple[str, ...] = ()
    removes: tuple[str, ...] = ()
    failed_adds: tuple[str, ...] = ()
    failed_removes: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.adds and not self.removes

    @property
    def ok(self) -> bool:
        return not self.failed_adds and not self.failed_removes

    def as_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "adds": list(self.adds),
            "removes": list(self.removes),
            "failed_adds": list(self.failed_adds),
            "failed_removes": list(self.failed_removes),
        }


async def invoke(fn: Callable[..., Any], *args: Any) -> Any:
    """Await coroutine functions directly; run blocking callables in a worker thread."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    res = await asyncio.to_thread(fn, *args)
    if inspect.isawaitable(res):
        return await res
    return res
