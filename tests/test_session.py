# Haven test scripts
from __future__ import annotations

import asyncio
from typing import Any

from haven_platform.config_base import LikesSettings
from haven_platform.likes import LIKED_CACHE_KEY, LikedSetReconciler, SessionBinder, read_liked
from haven_platform.likes._logging import collect

from conftest import SlowRemote

SLOW_DEBOUNCE = LikesSettings(debounce_sec=5.0)


def _binder(remote: Any, cache: Any, **kw: Any) -> SessionBinder:
    def factory(uid: str) -> LikedSetReconciler:
        return LikedSetReconciler(remote, cache, uid, settings=SLOW_DEBOUNCE)

    return SessionBinder(factory, cache, **kw)


def test_bind_loads_the_users_likes(remote, cache) -> None:
    remote.liked["u1"] = {"a", "b"}

    async def main() -> None:
        binder = _binder(remote, cache)
        await binder.bind("u1")
        assert binder.user_id == "u1"
        assert binder.reconciler is not None
        assert binder.reconciler.liked_ids == frozenset({"a", "b"})
        assert read_liked(cache, "u1") == {"a", "b"}

    asyncio.run(main())


def test_rebinding_same_user_is_a_no_op(remote, cache) -> None:
    async def main() -> None:
        binder = _binder(remote, cache)
        await binder.bind("u1")
        first = binder.reconciler
        await binder.bind(" u1 ")
        assert binder.reconciler is first
        assert remote.calls_of("fetch") == [("fetch", "u1")]

    asyncio.run(main())


def test_switching_user_flushes_previous_ledger_under_previous_id(remote, cache) -> None:
    remote.liked["u2"] = {"z"}

    async def main() -> None:
        binder = _binder(remote, cache)
        await binder.bind("u1")
        old = binder.reconciler
        assert old is not None
        toggled = asyncio.ensure_future(old.toggle("a"))
        await asyncio.sleep(0)

        await binder.bind("u2")
        assert old.disposed
        assert binder.reconciler is not None and binder.reconciler is not old
        assert binder.reconciler.liked_ids == frozenset({"z"})

        assert await binder.wait_background(1.0)
        assert await toggled is True
        assert remote.liked["u1"] == {"a"}
        assert remote.calls_of("add") == [("add", "u1", "a")]
        assert read_liked(cache, "u2") == {"z"}

    asyncio.run(main())


def test_signing_out_clears_cached_likes(remote, cache) -> None:
    remote.liked["u1"] = {"a"}
    events: list[dict[str, Any]] = []

    async def main() -> None:
        binder = _binder(remote, cache, on_progress=collect(events))
        await binder.bind("u1")
        assert cache.get(LIKED_CACHE_KEY) is not None
        await binder.bind("   ")
        assert binder.user_id is None
        assert binder.reconciler is None
        assert cache.get(LIKED_CACHE_KEY) is None

    asyncio.run(main())
    binds = [e for e in events if e["event"] == "session:bind"]
    assert binds == [
        {"event": "session:bind", "user": "u1", "prev": None},
        {"event": "session:bind", "user": None, "prev": "u1"},
    ]


def test_close_waits_for_the_final_flush(remote, cache) -> None:
    async def main() -> None:
        binder = _binder(remote, cache, teardown_grace=1.0)
        await binder.bind("u1")
        rec = binder.reconciler
        assert rec is not None
        rec.replace_all({"a", "b"})
        await binder.close()
        assert binder.reconciler is None
        assert binder.background == 0
        assert remote.liked["u1"] == {"a", "b"}

    asyncio.run(main())


def test_retiring_without_changes_sends_nothing(remote, cache) -> None:
    async def main() -> None:
        binder = _binder(remote, cache)
        await binder.bind("u1")
        await binder.bind("u2")
        assert binder.background == 0
        assert remote.calls_of("add") == [] and remote.calls_of("remove") == []

    asyncio.run(main())


def test_close_waits_for_a_flush_the_timer_already_started(cache) -> None:
    remote = SlowRemote()
    remote.delay = 0.1

    async def main() -> None:
        def factory(uid: str) -> LikedSetReconciler:
            return LikedSetReconciler(remote, cache, uid, settings=LikesSettings(debounce_sec=0.01))

        binder = SessionBinder(factory, cache, teardown_grace=2.0)
        await binder.bind("u1")
        rec = binder.reconciler
        assert rec is not None
        toggled = asyncio.ensure_future(rec.toggle("A"))
        await asyncio.sleep(0.03)
        assert rec.sending

        await binder.close()
        assert remote.calls_of("add") == [("add", "u1", "A")]
        assert binder.background == 0
        assert await toggled is True

    asyncio.run(main())


def test_bind_after_close_starts_a_fresh_session(remote, cache) -> None:
    remote.liked["u1"] = {"a"}

    async def main() -> None:
        binder = _binder(remote, cache)
        await binder.bind("u1")
        await binder.close(grace=0)
        assert binder.user_id is None
        await binder.bind("u1")
        assert binder.reconciler is not None
        assert binder.reconciler.liked_ids == frozenset({"a"})

    asyncio.run(main())
