"""Step sources: simulated pedometer, manual entry and the tick loop."""

from __future__ import annotations

import asyncio
import contextlib
import random
from typing import Callable, Optional

from kilometree.core.errors import InvalidInput


StepCallback = Callable[[int], None]


class SimulatedStepSource:
    """Pedometer stand-in producing a few steps per tick."""

    def __init__(
        self,
        min_steps: int = 1,
        max_steps: int = 8,
        rng: random.Random | None = None,
    ) -> None:
        if min_steps < 0 or max_steps < min_steps:
            raise ValueError("Invalid step range")
        self._min_steps = min_steps
        self._max_steps = max_steps
        self._rng = rng or random.Random()

    def next_increment(self) -> int:
        return self._rng.randint(self._min_steps, self._max_steps)


def parse_manual_steps(raw: str | int | float | None) -> int:
    if raw is None:
        raise InvalidInput("Please enter a number of steps")
    if isinstance(raw, bool):
        raise InvalidInput("Please enter a number of steps")
    if isinstance(raw, float):
        if not raw.is_integer():
            raise InvalidInput(f"Steps must be a whole number, got {raw}")
        raw = int(raw)
    if isinstance(raw, int):
        value = raw
    else:
        text = raw.strip().replace(",", "").replace("_", "")
        try:
            value = int(text)
        except ValueError as exc:
            raise InvalidInput(f"Not a valid step count: {raw!r}") from exc
    if value < 0:
        raise InvalidInput(f"Steps cannot be negative: {value}")
    return value


class StepTicker:
    """Drives a step source on a fixed interval until stopped."""

    def __init__(self, source: SimulatedStepSource, interval_sec: float = 1.0) -> None:
        self._source = source
        self._interval_sec = interval_sec
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_steps: StepCallback) -> bool:
        if self.is_running:
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(on_steps, self._stop_event))
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        task = self._task
        self._task = None
        self._stop_event.set()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self, on_steps: StepCallback, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval_sec)
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set():
                return
            on_steps(self._source.next_increment())
