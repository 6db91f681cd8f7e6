"""Countdown between sets."""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable

from periolifts_mcp.state.preferences import RestTimeSettings
from periolifts_mcp.state.tracking import SetCompleted, TrackingEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestTimerState:
    is_resting: bool = False
    remaining_seconds: int = 0
    original_duration: int | None = None

    @property
    def formatted_time(self) -> str:
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def progress(self) -> float:
        if not self.original_duration:
            return 0.0
        elapsed = self.original_duration - self.remaining_seconds
        return max(0.0, min(1.0, elapsed / self.original_duration))


class RestTimer:
    """Rest countdown driven by a once-a-second asyncio task.

    :meth:`tick` does the actual counting, so the timer can also be
    stepped by hand when no event loop is running.
    """

    def __init__(self, rest_settings: RestTimeSettings | None = None, interval: float = 1.0):
        self._rest_settings = rest_settings
        self._interval = interval
        self._state = RestTimerState()
        self._task: asyncio.Task | None = None
        self._listeners: list[Callable[[RestTimerState], None]] = []
        self._on_complete: list[Callable[[], None]] = []

    @property
    def state(self) -> RestTimerState:
        return self._state

    @property
    def is_actively_timing(self) -> bool:
        return self._state.is_resting and self._task is not None and not self._task.done()

    def subscribe(self, listener: Callable[[RestTimerState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_completion_listener(self, callback: Callable[[], None]) -> None:
        self._on_complete.append(callback)

    def _set(self, state: RestTimerState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    # --- Ticker ---

    def _start_ticker(self) -> None:
        self._stop_ticker()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; rest timer must be ticked manually")
            return
        self._task = loop.create_task(self._run())

    def _stop_ticker(self) -> None:
        if self._task is not None and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while self._state.is_resting:
            await asyncio.sleep(self._interval)
            self.tick()

    # --- Operations ---

    def start(self, seconds: int) -> None:
        self._set(RestTimerState(is_resting=True, remaining_seconds=seconds, original_duration=seconds))
        self._start_ticker()

    def tick(self) -> None:
        """Advance the countdown by one second."""
        if not self._state.is_resting:
            return
        if self._state.remaining_seconds > 0:
            self._set(replace(self._state, remaining_seconds=self._state.remaining_seconds - 1))
            return
        self._set(replace(self._state, is_resting=False))
        self._task = None
        for callback in list(self._on_complete):
            callback()

    def skip(self) -> None:
        self._stop_ticker()
        self._set(RestTimerState())

    def pause(self) -> None:
        self._stop_ticker()

    def resume(self) -> None:
        if not self._state.is_resting or self._state.remaining_seconds <= 0:
            return
        self._start_ticker()

    def add_time(self, seconds: int) -> None:
        if self._state.is_resting:
            self._set(replace(self._state, remaining_seconds=self._state.remaining_seconds + seconds))

    def subtract_time(self, seconds: int) -> None:
        if not self._state.is_resting:
            return
        remaining = max(0, self._state.remaining_seconds - seconds)
        self._set(replace(self._state, remaining_seconds=remaining))
        if remaining == 0:
            self.skip()

    def on_set_completed(self, event: TrackingEvent) -> None:
        """Start resting after each completed set, using the effective rest time."""
        if not isinstance(event, SetCompleted):
            return
        if self._rest_settings is not None:
            seconds = self._rest_settings.effective_rest_time(event.rest_time)
        else:
            seconds = event.rest_time or 0
        if seconds > 0:
            self.start(seconds)

    def dispose(self) -> None:
        self._stop_ticker()
        self._listeners.clear()
