"""Shared fixtures for the test suite."""

from __future__ import annotations

import threading
from datetime import date
from typing import Callable

import pytest
from httpx import ASGITransport, AsyncClient

from fittrack.db import get_kv_store
from fittrack.main import app
from fittrack.profile import router as profile_router
from fittrack.profile.acknowledgment import SaveAcknowledgment
from fittrack.profile.facade import ProfileFacade
from fittrack.profile.kv_store import InMemoryKeyValueStore
from fittrack.profile.models import WeightSample
from fittrack.profile.notifications import ChangeNotifier

TODAY = date(2024, 1, 1)


# ---------------------------------------------------------------------------
# Fake timer / recording store (no threads, no real storage)
# ---------------------------------------------------------------------------

class FakeTimer:
    """Stand-in for threading.Timer; fire() runs the callback by hand."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class TimerRecorder:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class RecordingStore(InMemoryKeyValueStore):
    """In-memory store that remembers every write, in order."""

    def __init__(self, initial=None, quota=None):
        super().__init__(initial, quota)
        self.writes: list[tuple[str, str | None]] = []
        self.write_threads: set[int] = set()

    def set(self, key, value):
        self.write_threads.add(threading.get_ident())
        super().set(key, value)
        self.writes.append((key, value))

    def remove(self, key):
        self.write_threads.add(threading.get_ident())
        super().remove(key)
        self.writes.append((key, None))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def kv():
    return RecordingStore()


@pytest.fixture()
def timers():
    return TimerRecorder()


@pytest.fixture()
def notifier():
    return ChangeNotifier()


@pytest.fixture()
def facade(kv, timers, notifier):
    deleted: list[bool] = []
    f = ProfileFacade(
        kv,
        notifier=notifier,
        acknowledgment=SaveAcknowledgment(delay=2.0, timer_factory=timers),
        account_deleter=lambda: deleted.append(True),
        today=lambda: TODAY,
    )
    f.deleted = deleted
    f.mount()
    return f


@pytest.fixture()
def http_store():
    return RecordingStore()


@pytest.fixture()
def override_store(http_store):
    """Override the FastAPI dependency so no real database is needed."""
    app.dependency_overrides[get_kv_store] = lambda: http_store
    yield http_store
    app.dependency_overrides.clear()
    profile_router.acknowledgment.cancel()


@pytest.fixture()
async def client(override_store):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def sample(day: str, weight: float) -> WeightSample:
    """Helper to build a WeightSample from an ISO day string."""
    return WeightSample(date=date.fromisoformat(day), weight=weight)


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
