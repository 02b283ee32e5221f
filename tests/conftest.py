# Haven test scripts
from __future__ import annotations

import asyncio
import os
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ.setdefault("HAVEN_LOG_LEVEL", "silent")


@dataclass
class FakeRemote:
    """In-memory remote store; records every call and can be told to reject ids."""

    liked: dict[str, set[str]] = field(default_factory=dict)
    rows: list[dict[str, Any]] = field(default_factory=list)
    reject: set[str] = field(default_factory=set)
    reject_adds: set[str] = field(default_factory=set)
    explode: set[str] = field(default_factory=set)
    listings_error: Exception | None = None
    calls: list[tuple[str, ...]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _record(self, *call: str) -> None:
        with self._lock:
            self.calls.append(call)

    def calls_of(self, kind: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == kind]

    def fetch_liked_ids(self, user_id: str) -> list[str]:
        self._record("fetch", user_id)
        return sorted(self.liked.get(user_id, set()))

    def add_liked(self, user_id: str, listing_id: str) -> bool:
        self._record("add", user_id, listing_id)
        if listing_id in self.explode:
            raise RuntimeError(f"boom {listing_id}")
        if listing_id in self.reject or listing_id in self.reject_adds:
            return False
        with self._lock:
            self.liked.setdefault(user_id, set()).add(listing_id)
        return True

    def remove_liked(self, user_id: str, listing_id: str) -> bool:
        self._record("remove", user_id, listing_id)
        if listing_id in self.explode:
            raise RuntimeError(f"boom {listing_id}")
        if listing_id in self.reject:
            return False
        with self._lock:
            self.liked.setdefault(user_id, set()).discard(listing_id)
        return True

    def fetch_all_listings(self) -> list[dict[str, Any]]:
        self._record("listings")
        if self.listings_error is not None:
            raise self.listings_error
        return [dict(r) for r in self.rows]


class SlowRemote(FakeRemote):
    """Async remote whose reads and writes each take `delay` seconds."""

    delay: float = 0.05

    async def fetch_liked_ids(self, user_id: str) -> list[str]:  # type: ignore[override]
        await asyncio.sleep(self.delay)
        return FakeRemote.fetch_liked_ids(self, user_id)

    async def add_liked(self, user_id: str, listing_id: str) -> bool:  # type: ignore[override]
        await asyncio.sleep(self.delay)
        return FakeRemote.add_liked(self, user_id, listing_id)

    async def remove_liked(self, user_id: str, listing_id: str) -> bool:  # type: ignore[override]
        await asyncio.sleep(self.delay)
        return FakeRemote.remove_liked(self, user_id, listing_id)


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def cache():
    from haven_platform.local_cache import MemoryCache

    return MemoryCache()


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HAVEN_CONFIG_BASE", str(tmp_path))
    monkeypatch.delenv("HAVEN_SUPABASE_URL", raising=False)
    monkeypatch.delenv("HAVEN_SUPABASE_KEY", raising=False)
    return tmp_path
