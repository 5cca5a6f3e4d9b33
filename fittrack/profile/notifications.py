"""In-process "profile changed" broadcast.

Zero payload, synchronous fan-out to whoever is subscribed at emission time.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ChangeNotifier:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Profile change listener %r failed", listener)

    def __len__(self) -> int:
        return len(self._listeners)


# Application-wide channel (one per process, like the browser window event)
profile_changed = ChangeNotifier()
