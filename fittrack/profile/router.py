"""Profile HTTP router: the screen's actions over the key-value store."""

from __future__ import annotations

from functools import partial

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from fittrack.config import settings
from fittrack.db import get_kv_store
from fittrack.profile.acknowledgment import SaveAcknowledgment
from fittrack.profile.errors import PersistenceError, ValidationError
from fittrack.profile.facade import ProfileFacade
from fittrack.profile.kv_store import KeyValueStore
from fittrack.profile.models import AttendanceStatus, ProfileForm, ProfileView, StorageKey, WeightSample
from fittrack.profile.notifications import profile_changed
from fittrack.profile.weight_history import current_day

router = APIRouter(prefix="/profile", tags=["profile"])

# Survives across requests so GET /profile can report a recent save
acknowledgment = SaveAcknowledgment(delay=settings.save_ack_seconds)


def _delete_local_account(kv: KeyValueStore) -> None:
    for key in StorageKey:
        kv.remove(key.value)


def get_facade(kv: KeyValueStore = Depends(get_kv_store)) -> ProfileFacade:
    facade = ProfileFacade(
        kv,
        notifier=profile_changed,
        acknowledgment=acknowledgment,
        account_deleter=partial(_delete_local_account, kv),
        today=partial(current_day, settings.default_tz),
        retention_days=settings.weight_history_retention_days,
        avatar_max_bytes=settings.avatar_max_bytes,
    )
    try:
        facade.mount()
    except PersistenceError as exc:
        raise _storage_error(exc)
    return facade


def _validation_error(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=exc.as_dict())


def _storage_error(exc: PersistenceError) -> HTTPException:
    return HTTPException(status_code=507, detail={"message": str(exc), "hint": exc.hint})


# ---------------------------------------------------------------------------
# /profile
# ---------------------------------------------------------------------------

# Store access blocks, so the handlers below are plain def and run in the threadpool.

@router.get("", response_model=ProfileView)
def read_profile(
    facade: ProfileFacade = Depends(get_facade),
) -> ProfileView:
    return facade.view()


@router.put("", response_model=ProfileView)
def save_profile(
    form: ProfileForm,
    facade: ProfileFacade = Depends(get_facade),
) -> ProfileView:
    try:
        return facade.save(form)
    except ValidationError as exc:
        raise _validation_error(exc)
    except PersistenceError as exc:
        raise _storage_error(exc)


@router.delete("")
def delete_account(
    facade: ProfileFacade = Depends(get_facade),
    confirm: bool = Query(default=False, description="Must be true; deletion cannot be undone"),
) -> dict[str, str]:
    try:
        facade.delete_account(confirmed=confirm)
    except ValidationError as exc:
        raise _validation_error(exc)
    except PersistenceError as exc:
        raise _storage_error(exc)
    return {"status": "deleted"}


# ---------------------------------------------------------------------------
# /profile/avatar
# ---------------------------------------------------------------------------


@router.post("/avatar", response_model=ProfileView)
async def upload_avatar(
    request: Request,
    facade: ProfileFacade = Depends(get_facade),
) -> ProfileView:
    """Raw image bytes in the body; Content-Type is used when sniffing fails.

    Decoding and the store write happen in worker threads inside set_avatar.
    """
    body = await request.body()
    try:
        await facade.set_avatar(body, request.headers.get("content-type"))
    except ValidationError as exc:
        raise _validation_error(exc)
    except PersistenceError as exc:
        raise _storage_error(exc)
    return facade.view()


# ---------------------------------------------------------------------------
# /profile/weight-history, /profile/attendance
# ---------------------------------------------------------------------------


@router.get("/weight-history", response_model=list[WeightSample])
def weight_history(
    facade: ProfileFacade = Depends(get_facade),
) -> list[WeightSample]:
    return facade.weight_history()


@router.get("/attendance")
def attendance(
    facade: ProfileFacade = Depends(get_facade),
) -> dict[str, AttendanceStatus]:
    return dict(facade.attendance.attendance)


@router.post("/attendance/{day}/cycle")
def cycle_attendance(
    day: str,
    facade: ProfileFacade = Depends(get_facade),
) -> dict[str, AttendanceStatus]:
    try:
        return facade.cycle_attendance(day)
    except ValidationError as exc:
        raise _validation_error(exc)
    except PersistenceError as exc:
        raise _storage_error(exc)
