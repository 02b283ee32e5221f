# Haven test scripts
from __future__ import annotations

import asyncio

import pytest

from haven_platform.likes import DebouncedDispatcher


def _counter() -> tuple[list[int], object]:
    fired: list[int] = []

    async def on_fire() -> None:
        fired.append(1)

    return fired, on_fire


def test_rejects_non_positive_delay() -> None:
    _, cb = _counter()
    with pytest.raises(ValueError):
        DebouncedDispatcher(0, cb)  # type: ignore[arg-type]


def test_burst_fires_once_on_trailing_edge() -> None:
    fired, cb = _counter()

    async def main() -> None:
        d = DebouncedDispatcher(0.03, cb)  # type: ignore[arg-type]
        for _ in range(5):
            d.schedule()
            await asyncio.sleep(0.005)
        assert fired == []
        assert d.pending
        await asyncio.sleep(0.08)
        await d.wait_idle()
        assert fired == [1]
        assert not d.pending

    asyncio.run(main())


def test_cancel_suppresses_timer() -> None:
    fired, cb = _counter()

    async def main() -> None:
        d = DebouncedDispatcher(0.02, cb)  # type: ignore[arg-type]
        d.schedule()
        d.cancel()
        await asyncio.sleep(0.05)
        assert fired == []

    asyncio.run(main())


def test_closed_dispatcher_ignores_schedule() -> None:
    fired, cb = _counter()

    async def main() -> None:
        d = DebouncedDispatcher(0.01, cb)  # type: ignore[arg-type]
        d.close()
        d.schedule()
        assert not d.pending
        await asyncio.sleep(0.03)
        assert fired == []

    asyncio.run(main())


def test_failing_flush_does_not_break_later_fires() -> None:
    calls: list[int] = []

    async def on_fire() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("remote down")

    async def main() -> None:
        d = DebouncedDispatcher(0.01, on_fire)
        d.schedule()
        await asyncio.sleep(0.03)
        await d.wait_idle()
        d.schedule()
        await asyncio.sleep(0.03)
        await d.wait_idle()
        assert calls == [1, 1]

    asyncio.run(main())
