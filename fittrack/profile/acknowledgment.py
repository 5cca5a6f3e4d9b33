"""Transient "saved" acknowledgment flag with a cancellable auto-reset timer."""

from __future__ import annotations

import threading
from typing import Callable, Protocol

from fittrack.profile.models import AckKind


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _thread_timer(delay: float, callback: Callable[[], None]) -> Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class SaveAcknowledgment:
    """`acknowledged` is True for `delay` seconds after each trigger()."""

    def __init__(self, delay: float = 2.0, timer_factory: TimerFactory = _thread_timer):
        self.delay = delay
        self._timer_factory = timer_factory
        self._timer: Timer | None = None
        self._lock = threading.Lock()
        self._generation = 0
        self.acknowledged = False
        self.kind: AckKind | None = None

    def trigger(self, kind: AckKind = AckKind.saved) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self.acknowledged = True
            self.kind = kind
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self.delay, lambda: self._expire(generation))
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._reset()

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation == self._generation:
                self._reset()

    def _reset(self) -> None:
        self._timer = None
        self.acknowledged = False
        self.kind = None
