"""Weight history: one sample per calendar day, chronological, rolling window.

upsert_today() is pure; WeightHistoryStore wraps it with load/persist against
the key-value boundary. The persisted value is always the full sequence
(overwrite, never an append log).
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from fittrack.profile import codec
from fittrack.profile.errors import ParseError
from fittrack.profile.kv_store import KeyValueStore
from fittrack.profile.models import StorageKey, WeightSample

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 90


def current_day(tz_name: str = "UTC") -> date:
    """Calendar day of the current instant in `tz_name`."""
    return datetime.now(ZoneInfo(tz_name)).date()


def upsert_today(
    history: list[WeightSample],
    weight: float,
    today: date | None = None,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> list[WeightSample]:
    """Set today's weight, keep the sequence sorted and inside the window.

    The first entry dated `today` is overwritten; otherwise a new entry is
    appended. The result is stable-sorted by date, then every entry dated
    before `today - retention_days` is dropped. `history` is not mutated.
    `weight` is trusted to be finite and positive.
    """
    if today is None:
        today = current_day()

    updated = list(history)
    index = next((i for i, s in enumerate(updated) if s.date == today), -1)
    if index >= 0:
        updated[index] = updated[index].model_copy(update={"weight": weight})
    else:
        updated.append(WeightSample(date=today, weight=weight))

    updated.sort(key=lambda s: s.date)

    cutoff = today - timedelta(days=retention_days)
    return [s for s in updated if s.date >= cutoff]


class WeightHistoryStore:
    def __init__(
        self,
        kv: KeyValueStore,
        today: Callable[[], date] = current_day,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ):
        self._kv = kv
        self._today = today
        self._retention_days = retention_days
        self.samples: list[WeightSample] = []
        self.last_error: ParseError | None = None

    def load(self) -> list[WeightSample]:
        """Read the persisted history into memory.

        Missing (or empty) history + a stored current weight seeds a single sample for
        today (migration from the pre-history schema). A malformed payload
        yields an empty history; the ParseError is logged and kept in
        `last_error`, never raised.
        """
        self.last_error = None
        raw = self._kv.get(StorageKey.weight_history.value)

        if not raw:
            current = codec.parse_positive(self._kv.get(StorageKey.weight.value))
            if current is None:
                self.samples = []
            else:
                self.samples = [WeightSample(date=self._today(), weight=current)]
            return list(self.samples)

        try:
            self.samples = codec.decode_weight_history(raw)
        except ParseError as exc:
            logger.warning("Falling back to empty weight history: %s", exc)
            self.last_error = exc
            self.samples = []
        return list(self.samples)

    def record(self, weight: float) -> list[WeightSample]:
        """Upsert today's weight and persist the whole sequence."""
        updated = upsert_today(self.samples, weight, self._today(), self._retention_days)
        self._kv.set(StorageKey.weight_history.value, codec.encode_weight_history(updated))
        self.samples = updated
        return list(updated)
