"""Profile data model: Pydantic v2 models and storage keys."""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StorageKey(str, Enum):
    """Key names in the local key-value store (browser-storage compatible)."""

    name = "userName"
    weight = "userWeight"
    height = "userHeight"
    social = "userInstagram"
    goal = "userGoal"
    avatar = "userAvatar"
    weight_history = "userWeightHistory"
    attendance = "userAttendance"


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"


class AckKind(str, Enum):
    saved = "saved"
    avatar_saved = "avatar_saved"


class WeightSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime.date
    weight: float = Field(gt=0, allow_inf_nan=False)


class ProfileRecord(BaseModel):
    """Scalar profile fields as last read from (or written to) storage."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    weight: float | None = None
    height: float | None = None
    social: str = ""
    goal: str = ""  # empty means "unset"
    avatar: str | None = None  # data URL


class ProfileForm(BaseModel):
    """Raw user input for a save. Numbers arrive as typed text."""

    name: str = ""
    weight: str | float = ""
    height: str | float = ""
    social: str | None = None
    goal: str | None = None


class ProfileView(BaseModel):
    """Read-only projection handed to rendering layers."""

    model_config = ConfigDict(frozen=True)

    record: ProfileRecord
    history: list[WeightSample] = Field(default_factory=list)
    attendance: dict[str, AttendanceStatus] = Field(default_factory=dict)
    save_acknowledged: bool = False
    ack_kind: AckKind | None = None
