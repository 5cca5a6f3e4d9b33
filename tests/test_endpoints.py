"""Endpoint tests: FastAPI app via httpx."""

from __future__ import annotations

import threading

import pytest

from fittrack.config import settings
from fittrack.db import get_kv_store
from fittrack.main import app
from fittrack.profile.errors import QuotaExceededError
from tests.conftest import PNG_BYTES, RecordingStore

FORM = {"name": "Marvin R.", "weight": "75", "height": "180", "social": "marvin_fit", "goal": ""}


class TestProfileEndpoints:
    @pytest.mark.asyncio
    async def test_empty_profile(self, client):
        resp = await client.get("/profile")
        assert resp.status_code == 200
        body = resp.json()
        assert body["record"]["name"] == ""
        assert body["history"] == []
        assert body["attendance"] == {}
        assert body["save_acknowledged"] is False

    @pytest.mark.asyncio
    async def test_save(self, client, override_store):
        resp = await client.put("/profile", json=FORM)
        assert resp.status_code == 200
        body = resp.json()
        assert body["record"]["social"] == "@marvin_fit"
        assert body["save_acknowledged"] is True
        assert body["ack_kind"] == "saved"
        assert len(body["history"]) == 1
        assert override_store.get("userWeight") == "75"

    @pytest.mark.asyncio
    async def test_save_invalid_weight_422(self, client, override_store):
        resp = await client.put("/profile", json={**FORM, "weight": "-5"})
        assert resp.status_code == 422
        assert resp.json()["detail"]["field"] == "weight"
        assert override_store.writes == []

    @pytest.mark.asyncio
    async def test_save_quota_507(self, client):
        full = RecordingStore(quota=60)
        app.dependency_overrides[get_kv_store] = lambda: full
        resp = await client.put("/profile", json=FORM)
        assert resp.status_code == 507
        assert resp.json()["detail"]["hint"] == QuotaExceededError.hint
        assert "userInstagram" in resp.json()["detail"]["message"]
        # fields written before the failing one stay written
        assert [key for key, _ in full.writes] == ["userName", "userWeight", "userHeight"]

    @pytest.mark.asyncio
    async def test_store_writes_run_off_event_loop(self, client, override_store):
        await client.put("/profile", json=FORM)
        await client.post("/profile/attendance/2024-03-01/cycle")
        await client.post("/profile/avatar", content=PNG_BYTES, headers={"content-type": "image/png"})
        assert len(override_store.writes) > 0
        assert threading.get_ident() not in override_store.write_threads

    @pytest.mark.asyncio
    async def test_saved_state_visible_on_next_read(self, client):
        await client.put("/profile", json=FORM)
        resp = await client.get("/profile")
        assert resp.json()["record"]["name"] == "Marvin R."
        assert resp.json()["save_acknowledged"] is True

    @pytest.mark.asyncio
    async def test_weight_history(self, client):
        await client.put("/profile", json=FORM)
        await client.put("/profile", json={**FORM, "weight": "76"})
        resp = await client.get("/profile/weight-history")
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 1
        assert data[0]["weight"] == 76.0


class TestAvatarEndpoint:
    @pytest.mark.asyncio
    async def test_upload(self, client, override_store):
        resp = await client.post(
            "/profile/avatar", content=PNG_BYTES, headers={"content-type": "image/png"}
        )
        assert resp.status_code == 200
        assert resp.json()["ack_kind"] == "avatar_saved"
        assert override_store.get("userAvatar").startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_unreadable_422(self, client):
        resp = await client.post(
            "/profile/avatar", content=b"hello", headers={"content-type": "text/plain"}
        )
        assert resp.status_code == 422
        assert resp.json()["detail"]["reason"] == "unreadable"

    @pytest.mark.asyncio
    async def test_too_large_422(self, client):
        payload = PNG_BYTES + b"\x00" * settings.avatar_max_bytes
        resp = await client.post("/profile/avatar", content=payload)
        assert resp.status_code == 422
        assert resp.json()["detail"]["reason"] == "too_large"


class TestAttendanceEndpoints:
    @pytest.mark.asyncio
    async def test_cycle(self, client, override_store):
        url = "/profile/attendance/2024-03-01/cycle"
        assert (await client.post(url)).json() == {"2024-03-01": "present"}
        assert (await client.post(url)).json() == {"2024-03-01": "absent"}
        assert (await client.post(url)).json() == {}
        assert override_store.get("userAttendance") is None

    @pytest.mark.asyncio
    async def test_read(self, client):
        await client.post("/profile/attendance/2024-03-01/cycle")
        resp = await client.get("/profile/attendance")
        assert resp.json() == {"2024-03-01": "present"}

    @pytest.mark.asyncio
    async def test_bad_day_422(self, client):
        resp = await client.post("/profile/attendance/tomorrow/cycle")
        assert resp.status_code == 422
        assert resp.json()["detail"]["field"] == "day"


class TestDeleteAccount:
    @pytest.mark.asyncio
    async def test_requires_confirm(self, client, override_store):
        await client.put("/profile", json=FORM)
        resp = await client.delete("/profile")
        assert resp.status_code == 422
        assert override_store.get("userName") == "Marvin R."

    @pytest.mark.asyncio
    async def test_confirmed_clears_profile(self, client, override_store):
        await client.put("/profile", json=FORM)
        resp = await client.delete("/profile?confirm=true")
        assert resp.status_code == 200
        assert override_store.snapshot() == {}


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
