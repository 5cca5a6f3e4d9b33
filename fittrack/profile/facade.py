"""ProfileFacade: validation and persistence orchestration for the profile screen.

Owns the in-memory ProfileRecord plus the weight-history and attendance
stores. Every successful mutation is written through to the key-value
boundary field by field (no transaction), then broadcast on the change
notifier. Rendering layers only ever receive a frozen ProfileView.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from functools import partial
from typing import Callable

from fittrack.config import settings
from fittrack.profile import avatar, codec
from fittrack.profile.acknowledgment import SaveAcknowledgment
from fittrack.profile.attendance import AttendanceStore
from fittrack.profile.errors import ValidationError
from fittrack.profile.kv_store import KeyValueStore
from fittrack.profile.models import (
    AckKind,
    AttendanceStatus,
    ProfileForm,
    ProfileRecord,
    ProfileView,
    StorageKey,
    WeightSample,
)
from fittrack.profile.notifications import ChangeNotifier
from fittrack.profile.weight_history import DEFAULT_RETENTION_DAYS, WeightHistoryStore, current_day

logger = logging.getLogger(__name__)


def _size_label(n: int) -> str:
    """2097152 -> '2 MB', 524288 -> '512 KB', 300 -> '300 bytes'."""
    for unit, factor in (("MB", 1024 * 1024), ("KB", 1024)):
        if n >= factor:
            return f"{n / factor:g} {unit}"
    return f"{n} bytes"


def normalize_social(handle: str | None) -> str:
    """'  marvin_fit' / '@marvin_fit' / '@@marvin_fit' -> '@marvin_fit'; blank -> ''."""
    bare = (handle or "").strip().lstrip("@").strip()
    return f"@{bare}" if bare else ""


class ProfileFacade:
    def __init__(
        self,
        kv: KeyValueStore,
        notifier: ChangeNotifier | None = None,
        acknowledgment: SaveAcknowledgment | None = None,
        account_deleter: Callable[[], None] | None = None,
        today: Callable[[], date] = current_day,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        avatar_max_bytes: int = settings.avatar_max_bytes,
    ):
        self._kv = kv
        self._notifier = notifier or ChangeNotifier()
        self._ack = acknowledgment or SaveAcknowledgment()
        self._account_deleter = account_deleter
        self._avatar_max_bytes = avatar_max_bytes
        # Tickets are handed out only to selections that passed the size check
        self._avatar_ticket = 0
        self._avatar_stored_ticket = 0
        self._avatar_lock = asyncio.Lock()

        self.history = WeightHistoryStore(kv, today=today, retention_days=retention_days)
        self.attendance = AttendanceStore(kv)
        self.record = ProfileRecord()

    # ------------------------------------------------------------------
    # Load / project
    # ------------------------------------------------------------------

    def mount(self) -> ProfileView:
        """Drop in-memory copies and re-read everything from storage."""
        get = self._kv.get
        self.record = ProfileRecord(
            name=get(StorageKey.name.value) or "",
            weight=codec.parse_positive(get(StorageKey.weight.value)),
            height=codec.parse_positive(get(StorageKey.height.value)),
            social=get(StorageKey.social.value) or "",
            goal=get(StorageKey.goal.value) or "",
            avatar=get(StorageKey.avatar.value) or None,
        )
        self.history.load()
        self.attendance.load()
        return self.view()

    def view(self) -> ProfileView:
        return ProfileView(
            record=self.record,
            history=list(self.history.samples),
            attendance=dict(self.attendance.attendance),
            save_acknowledged=self._ack.acknowledged,
            ack_kind=self._ack.kind,
        )

    @property
    def save_acknowledged(self) -> bool:
        return self._ack.acknowledged

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save(self, form: ProfileForm) -> ProfileView:
        """Validate and persist the scalar fields, then record today's weight.

        Raises ValidationError (nothing written) or PersistenceError (fields
        written before the failure stay written).
        """
        weight = codec.parse_positive(form.weight)
        if weight is None:
            raise ValidationError("weight", "invalid", "Enter a valid weight (greater than 0)")
        height = codec.parse_positive(form.height)
        if height is None:
            raise ValidationError("height", "invalid", "Enter a valid height (greater than 0)")
        name = (form.name or "").strip()
        if not name:
            raise ValidationError("name", "required", "Enter a name")

        social = normalize_social(form.social)
        goal = form.goal or ""

        self._kv.set(StorageKey.name.value, name)
        self._kv.set(StorageKey.weight.value, codec.format_number(weight))
        self._kv.set(StorageKey.height.value, codec.format_number(height))
        self._kv.set(StorageKey.social.value, social)
        self._kv.set(StorageKey.goal.value, goal)

        self.history.record(weight)
        self.attendance.persist_if_not_empty()

        self.record = self.record.model_copy(
            update={"name": name, "weight": weight, "height": height, "social": social, "goal": goal}
        )
        logger.info("Profile saved (weight=%s, history=%d samples)", weight, len(self.history.samples))

        self._notifier.notify()
        self._ack.trigger(AckKind.saved)
        return self.view()

    async def set_avatar(self, source: avatar.AvatarSource, content_type: str | None = None) -> bool:
        """Validate, encode and store a new avatar.

        Returns False when a later valid selection was already stored while
        this one was decoding; the later selection wins and this result is
        dropped. A rejected selection (too large, unreadable) raises and
        never displaces one that is still in flight. The storage write runs
        in a worker thread.
        """
        size = avatar.payload_size(source)
        if size is not None and size > self._avatar_max_bytes:
            raise self._too_large()

        self._avatar_ticket += 1
        ticket = self._avatar_ticket

        data_url = await asyncio.to_thread(partial(self._decode_avatar, source, content_type))

        async with self._avatar_lock:
            if ticket < self._avatar_stored_ticket:
                logger.info("Discarding avatar decode superseded by a newer selection")
                return False
            await asyncio.to_thread(self._kv.set, StorageKey.avatar.value, data_url)
            self._avatar_stored_ticket = ticket

        self.record = self.record.model_copy(update={"avatar": data_url})
        logger.info("Avatar stored, encoded size: %d", len(data_url))

        self._notifier.notify()
        self._ack.trigger(AckKind.avatar_saved)
        return True

    def _decode_avatar(self, source: avatar.AvatarSource, content_type: str | None) -> str:
        data = avatar.read_payload(source)
        if len(data) > self._avatar_max_bytes:
            raise self._too_large()
        return avatar.to_data_url(data, content_type)

    def _too_large(self) -> ValidationError:
        limit = _size_label(self._avatar_max_bytes)
        return ValidationError("avatar", "too_large", f"Image is too large (max {limit})")

    def cycle_attendance(self, day_key: str) -> dict[str, AttendanceStatus]:
        """Calendar callback: advance one day's status and persist immediately."""
        updated = self.attendance.cycle(day_key)
        self._notifier.notify()
        return updated

    def weight_history(self) -> list[WeightSample]:
        return list(self.history.samples)

    def delete_account(self, confirmed: bool) -> None:
        """Irreversible. Only runs after an explicit confirmation."""
        if not confirmed:
            raise ValidationError("confirmation", "required", "Account deletion must be confirmed")
        if self._account_deleter is None:
            raise RuntimeError("No account deleter configured")
        logger.warning("Deleting account")
        self._account_deleter()
        self._ack.cancel()
        self._notifier.notify()
