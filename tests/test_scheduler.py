from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from aria_voice.scheduler import PeriodicTask
from aria_voice.tts import MemoryAudioCache


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_run_once_passes_clock_time_to_action() -> None:
    clock = FakeClock(1_000.0)
    seen: list[float] = []
    task = PeriodicTask("probe", 60, seen.append, clock=clock)

    asyncio.run(task.run_once())
    clock.now = 1_060.0
    asyncio.run(task.run_once())

    assert seen == [1_000.0, 1_060.0]
    assert task.runs == 2


def test_sweep_task_expires_cache_entries_with_fake_clock() -> None:
    clock = FakeClock(0.0)
    cache = MemoryAudioCache(ttl_seconds=600, clock=clock)
    cache.store("a", b"1")
    clock.now = 300.0
    cache.store("b", b"2")
    task = PeriodicTask("audio-sweep", 60, cache.sweep, clock=clock)

    clock.now = 601.0
    removed_first = asyncio.run(task.run_once())
    clock.now = 901.0
    removed_second = asyncio.run(task.run_once())

    assert removed_first == 1
    assert removed_second == 1
    assert len(cache) == 0


def test_failed_run_is_logged_and_schedule_keeps_going() -> None:
    async def _run() -> int:
        calls = {"count": 0}
        ticks = asyncio.Event()

        def action(now: float) -> None:
            calls["count"] += 1
            if calls["count"] >= 3:
                ticks.set()
            raise RuntimeError("flush failed")

        async def no_wait(seconds: float) -> None:
            await asyncio.sleep(0)

        task = PeriodicTask("flaky", 30, action, sleep=no_wait)
        await task.start()
        await asyncio.wait_for(ticks.wait(), timeout=1)
        await task.stop()
        return calls["count"]

    assert asyncio.run(_run()) >= 3


def test_async_actions_are_awaited(tmp_path: Path) -> None:
    target = tmp_path / "flushed"

    async def action(now: float) -> str:
        target.write_text(str(now), encoding="utf-8")
        return "done"

    task = PeriodicTask("async", 30, action, clock=FakeClock(5.0))

    assert asyncio.run(task.run_once()) == "done"
    assert target.read_text(encoding="utf-8") == "5.0"


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PeriodicTask("bad", 0, lambda now: None)
