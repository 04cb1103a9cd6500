"""Periodic background jobs (audio cache sweep, JSON flush)."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any


class PeriodicTask:
    """Runs ``action(now)`` every ``interval_seconds`` on the event loop.

    ``clock`` and ``sleep`` are injectable so tests can drive the schedule
    without waiting. Failures of a single run are logged and do not stop the
    schedule.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        action: Callable[[float], Any],
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self._interval_seconds = interval_seconds
        self._action = action
        self._clock = clock
        self._sleep = sleep
        self._logger = logger or logging.getLogger("aria_voice.scheduler")
        self._task: asyncio.Task[None] | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"periodic-{self.name}")
        self._logger.info("periodic_task_started", extra={"task": self.name, "interval": self._interval_seconds})

    async def stop(self) -> None:
        if not self._task:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

        self._logger.info("periodic_task_stopped", extra={"task": self.name, "runs": self.runs})

    async def run_once(self) -> Any:
        now = self._clock()
        try:
            result = self._action(now)
            if asyncio.iscoroutine(result):
                result = await result
        except Exception:  # noqa: BLE001
            self._logger.exception("periodic_task_failed", extra={"task": self.name})
            return None
        finally:
            self.runs += 1
        return result

    async def _loop(self) -> None:
        while True:
            await self._sleep(self._interval_seconds)
            await self.run_once()
