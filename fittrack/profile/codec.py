"""Typed encode/decode at the persistence boundary.

decode_* raise ParseError on anything malformed; callers pick the fallback.
"""

from __future__ import annotations

import math

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from fittrack.profile.errors import ParseError
from fittrack.profile.models import AttendanceStatus, StorageKey, WeightSample

_HISTORY = TypeAdapter(list[WeightSample])
_ATTENDANCE = TypeAdapter(dict[str, AttendanceStatus])


def _first_error(exc: SchemaError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def decode_weight_history(raw: str) -> list[WeightSample]:
    try:
        return _HISTORY.validate_json(raw)
    except SchemaError as exc:
        raise ParseError(StorageKey.weight_history.value, _first_error(exc)) from exc


def encode_weight_history(history: list[WeightSample]) -> str:
    return _HISTORY.dump_json(history).decode()


def decode_attendance(raw: str) -> dict[str, AttendanceStatus]:
    try:
        return _ATTENDANCE.validate_json(raw)
    except SchemaError as exc:
        raise ParseError(StorageKey.attendance.value, _first_error(exc)) from exc


def encode_attendance(attendance: dict[str, AttendanceStatus]) -> str:
    return _ATTENDANCE.dump_json(attendance).decode()


def parse_positive(value: str | float | None) -> float | None:
    """Parse a finite number > 0 from typed input. None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def format_number(value: float) -> str:
    """Shortest text form: 75.0 -> "75", 72.5 -> "72.5"."""
    if value.is_integer():
        return str(int(value))
    return repr(value)
