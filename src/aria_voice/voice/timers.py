"""Cancellable delayed callbacks for the voice orchestrator."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Prevent the callback from running if it has not run yet."""


class Timers(Protocol):
    """Schedules ``callback`` after ``delay`` seconds.

    A callback may return an awaitable; the scheduler is responsible for
    running it to completion.
    """

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        """Schedule ``callback`` and return a handle that can cancel it."""


class AsyncioTimers:
    """``Timers`` backed by the running event loop."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = logger or logging.getLogger("aria_voice.voice.timers")

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), self._run, callback)

    def _run(self, callback: Callable[[], Any]) -> None:
        result = callback()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._logger.error("timer_callback_failed", exc_info=task.exception())

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
