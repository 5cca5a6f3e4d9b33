"""Gym attendance: sparse day -> status map with a strict three-state cycle.

    unmarked (no key) -> present -> absent -> unmarked

"unmarked" is key absence, never a stored value.
"""

from __future__ import annotations

import logging
from datetime import date

from fittrack.profile import codec
from fittrack.profile.errors import ParseError, ValidationError
from fittrack.profile.kv_store import KeyValueStore
from fittrack.profile.models import AttendanceStatus, StorageKey

logger = logging.getLogger(__name__)


def _is_day_key(value: str) -> bool:
    if len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def cycle(
    attendance: dict[str, AttendanceStatus],
    day_key: str,
) -> dict[str, AttendanceStatus]:
    """Advance `day_key` one step through the cycle. Returns a new map."""
    updated = dict(attendance)
    status = updated.get(day_key)

    if status == AttendanceStatus.present:
        updated[day_key] = AttendanceStatus.absent
    elif status == AttendanceStatus.absent:
        del updated[day_key]
    else:
        updated[day_key] = AttendanceStatus.present
    return updated


class AttendanceStore:
    def __init__(self, kv: KeyValueStore):
        self._kv = kv
        self.attendance: dict[str, AttendanceStatus] = {}
        self.last_error: ParseError | None = None

    def load(self) -> dict[str, AttendanceStatus]:
        """Read the persisted map. Malformed payloads fall back to {} (logged)."""
        self.last_error = None
        raw = self._kv.get(StorageKey.attendance.value)
        if not raw:
            self.attendance = {}
            return {}

        try:
            self.attendance = codec.decode_attendance(raw)
        except ParseError as exc:
            logger.warning("Falling back to empty attendance: %s", exc)
            self.last_error = exc
            self.attendance = {}
        return dict(self.attendance)

    def cycle(self, day_key: str) -> dict[str, AttendanceStatus]:
        """Cycle one day and write the result immediately.

        When the map becomes empty the key is removed instead, so an empty
        map is never stored and the durable copy still matches memory.
        """
        if not _is_day_key(day_key):
            raise ValidationError("day", "invalid", f"Not a calendar day (YYYY-MM-DD): {day_key!r}")

        updated = cycle(self.attendance, day_key)
        if updated:
            self._kv.set(StorageKey.attendance.value, codec.encode_attendance(updated))
        else:
            self._kv.remove(StorageKey.attendance.value)
        self.attendance = updated
        return dict(updated)

    def persist_if_not_empty(self) -> bool:
        if not self.attendance:
            return False
        self._kv.set(StorageKey.attendance.value, codec.encode_attendance(self.attendance))
        return True
