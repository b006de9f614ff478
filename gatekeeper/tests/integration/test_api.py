"""
API tests through the ASGI application.

Process-wide collaborators are replaced with test doubles via
``dependency_overrides``; every request gets its own committed session from
the test database.
"""

from typing import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from gatekeeper.api.deps import (
    get_channels,
    get_classifier,
    get_dispatcher,
    get_http_client,
    get_scheduler,
    get_storage,
)
from gatekeeper.application.quiet_hours import QuietHoursScheduler
from gatekeeper.core.security import Operator, check_rate_limit, verify_basic_auth
from gatekeeper.domain.exceptions import RecognitionError
from gatekeeper.domain.models import NotificationType
from gatekeeper.infrastructure.db.session import get_session
from gatekeeper.infrastructure.recognition import StaticPlateClassifier
from gatekeeper.infrastructure.storage import ImageStorage
from gatekeeper.main import app

API_KEY_HEADER = {"X-API-Key": "test-api-key-123"}
IMAGE = ("capture.jpg", b"\xff\xd8\xff\xe0capture", "image/jpeg")


@pytest.fixture
def classifier() -> StaticPlateClassifier:
    return StaticPlateClassifier("B456CD777", 91)


@pytest.fixture
async def client(
    session_factory,
    barrier_client,
    channel,
    dispatcher,
    classifier,
    tmp_path,
) -> AsyncIterator[httpx.AsyncClient]:
    """API client with test doubles for every external collaborator."""

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[verify_basic_auth] = lambda: Operator(username="operator")
    app.dependency_overrides[check_rate_limit] = lambda: None
    app.dependency_overrides[get_http_client] = lambda: barrier_client
    app.dependency_overrides[get_channels] = lambda: [channel]
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_scheduler] = lambda: QuietHoursScheduler(session_factory, [channel])
    app.dependency_overrides[get_classifier] = lambda: classifier
    app.dependency_overrides[get_storage] = lambda: ImageStorage(tmp_path, "/photos")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as api:
        yield api

    app.dependency_overrides.clear()


async def add_barrier(client: httpx.AsyncClient, **fields) -> dict:
    body = {"name": "Main gate", "type": "came", "host": "10.0.0.20", "is_primary": True}
    body.update(fields)
    response = await client.post("/api/v1/integrations/barriers", json=body)
    assert response.status_code == 201
    return response.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Correlation-ID": "req-42"})
        assert response.headers["X-Correlation-ID"] == "req-42"


class TestRecognitionEndpoint:
    """Tests for POST /api/v1/recognition/analyze."""

    @pytest.mark.asyncio
    async def test_requires_api_key(self, client):
        response = await client.post("/api/v1/recognition/analyze", files={"image": IMAGE})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_api_key(self, client):
        response = await client.post(
            "/api/v1/recognition/analyze",
            files={"image": IMAGE},
            headers={"X-API-Key": "nope"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rejects_non_image(self, client):
        response = await client.post(
            "/api/v1/recognition/analyze",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=API_KEY_HEADER,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, client, dispatcher):
        response = await client.post(
            "/api/v1/recognition/analyze",
            files={"image": IMAGE},
            headers=API_KEY_HEADER,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["plate"] == "B456CD777"
        assert data["outcome"] == "unknown"
        assert data["is_allowed"] is False
        assert data["photo_url"].startswith("/photos/")
        assert dispatcher.types == [NotificationType.UNKNOWN_VEHICLE]

        passage = await client.get(f"/api/v1/passages/{data['passage_id']}")
        assert passage.status_code == 200
        assert passage.json()["license_plate"] == "B456CD777"

    @pytest.mark.asyncio
    async def test_allowed_vehicle_opens_barrier(self, client, classifier, controller):
        classifier.plate = "a123 bc777"
        await add_barrier(client)
        await client.post("/api/v1/vehicles", json={"license_plate": "A123BC777"})

        response = await client.post(
            "/api/v1/recognition/analyze",
            files={"image": IMAGE},
            headers=API_KEY_HEADER,
        )

        data = response.json()
        assert data["outcome"] == "allowed"
        assert data["barrier_opened"] is True
        assert controller.requests[-1].url.path == "/api/barrier/open"

    @pytest.mark.asyncio
    async def test_auto_open_off(self, client, classifier, controller):
        classifier.plate = "A123BC777"
        await add_barrier(client)
        await client.post("/api/v1/vehicles", json={"license_plate": "A123BC777"})

        response = await client.post(
            "/api/v1/recognition/analyze",
            files={"image": IMAGE},
            data={"auto_open": "false"},
            headers=API_KEY_HEADER,
        )

        assert response.json()["barrier_opened"] is False
        assert controller.requests == []

    @pytest.mark.asyncio
    async def test_recognition_failure(self, client):
        failing = MagicMock()
        failing.recognize = AsyncMock(side_effect=RecognitionError("Recognition service timed out"))
        app.dependency_overrides[get_classifier] = lambda: failing

        response = await client.post(
            "/api/v1/recognition/analyze",
            files={"image": IMAGE},
            headers=API_KEY_HEADER,
        )

        assert response.status_code == 502
        passages = await client.get("/api/v1/passages")
        assert passages.json()["count"] == 0


class TestBarrierEndpoints:
    """Tests for manual opening and the command log."""

    @pytest.mark.asyncio
    async def test_requires_operator(self, client):
        app.dependency_overrides.pop(verify_basic_auth)

        response = await client.post("/api/v1/barrier/open", json={"confirm": True})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_confirmation_required(self, client, controller):
        response = await client.post("/api/v1/barrier/open", json={"confirm": False})

        assert response.status_code == 422
        assert controller.requests == []

    @pytest.mark.asyncio
    async def test_manual_open(self, client, dispatcher):
        await add_barrier(client)

        response = await client.post(
            "/api/v1/barrier/open",
            json={"confirm": True, "notes": "Courier"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert dispatcher.types == [NotificationType.MANUAL_OPEN]

        actions = (await client.get("/api/v1/barrier/actions")).json()
        assert actions["count"] == 1
        assert actions["actions"][0]["triggered_by"] == "manual"
        assert actions["actions"][0]["actor"] == "operator"

    @pytest.mark.asyncio
    async def test_manual_open_without_barrier(self, client):
        response = await client.post("/api/v1/barrier/open", json={"confirm": True})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["error"] == "No primary barrier integration configured"


class TestRegistryEndpoints:
    """Tests for vehicles and blacklist."""

    @pytest.mark.asyncio
    async def test_vehicle_lifecycle(self, client):
        created = await client.post(
            "/api/v1/vehicles",
            json={"license_plate": " a123 bc777 ", "owner_name": "Jane Doe"},
        )
        assert created.status_code == 201
        vehicle = created.json()
        assert vehicle["license_plate"] == "A123BC777"
        assert vehicle["created_by"] == "operator"

        duplicate = await client.post("/api/v1/vehicles", json={"license_plate": "A123BC777"})
        assert duplicate.status_code == 409

        deleted = await client.delete(f"/api/v1/vehicles/{vehicle['id']}")
        assert deleted.status_code == 204

        assert (await client.get("/api/v1/vehicles/999")).status_code == 404

    @pytest.mark.asyncio
    async def test_blacklist_check(self, client):
        await client.post(
            "/api/v1/blacklist",
            json={"license_plate": "X666XX666", "severity": "critical", "reason": "Stolen"},
        )

        hit = await client.get("/api/v1/blacklist/check", params={"plate": "x666 xx666"})
        miss = await client.get("/api/v1/blacklist/check", params={"plate": "A1"})

        assert hit.json()["is_blacklisted"] is True
        assert hit.json()["entry"]["severity"] == "critical"
        assert miss.json() == {"is_blacklisted": False, "entry": None}

    @pytest.mark.asyncio
    async def test_blacklist_csv_round_trip(self, client):
        imported = await client.post(
            "/api/v1/blacklist/import",
            json={"csv_data": "licensePlate,severity\nX1,high\nX2,low\n"},
        )
        assert imported.json()["imported"] == 2

        exported = await client.get("/api/v1/blacklist/export")
        assert exported.status_code == 200
        assert exported.headers["content-type"].startswith("text/csv")
        assert "attachment" in exported.headers["content-disposition"]
        assert exported.text.count("\n") == 3

        preview = await client.post("/api/v1/blacklist/import/preview", json={"csv_data": exported.text})
        assert preview.json()["duplicates"] == 2

    @pytest.mark.asyncio
    async def test_blacklist_import_without_plate_column(self, client):
        response = await client.post("/api/v1/blacklist/import", json={"csv_data": "plate\nX1\n"})
        assert response.status_code == 422


class TestNotificationEndpoints:
    """Tests for notification history, quiet hours and resend."""

    @pytest.mark.asyncio
    async def test_quiet_hours_round_trip(self, client):
        updated = await client.put(
            "/api/v1/notifications/quiet-hours",
            json={"enabled": True, "start": "23:00", "end": "06:30", "bypass_critical": False},
        )
        assert updated.status_code == 200

        current = (await client.get("/api/v1/notifications/quiet-hours")).json()
        assert current["enabled"] is True
        assert current["start"] == "23:00"
        assert current["end"] == "06:30"
        assert current["bypass_critical"] is False
        assert current["pending_count"] == 0

    @pytest.mark.asyncio
    async def test_quiet_hours_rejects_bad_time(self, client):
        response = await client.put(
            "/api/v1/notifications/quiet-hours",
            json={"enabled": True, "start": "25:00", "end": "06:30"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_drain_empty(self, client):
        response = await client.post("/api/v1/notifications/drain")
        assert response.json() == {"sent": 0, "failed": 0, "drained": 0, "digest_id": None}

    @pytest.mark.asyncio
    async def test_daily_summary_and_resend(self, client, channel):
        summary = await client.post("/api/v1/notifications/daily-summary", json={"day": "2026-05-03"})
        assert summary.json()["sent"] is True
        event_id = summary.json()["event_id"]

        listed = (await client.get("/api/v1/notifications", params={"type": "daily_summary"})).json()
        assert listed["count"] == 1

        resent = await client.post(f"/api/v1/notifications/{event_id}/resend")
        assert resent.json()["success"] is True
        assert len(channel.sent) == 2

        event = (await client.get(f"/api/v1/notifications/{event_id}")).json()
        assert event["retry_count"] == 1

    @pytest.mark.asyncio
    async def test_missing_notification(self, client):
        assert (await client.get("/api/v1/notifications/404")).status_code == 404
        assert (await client.post("/api/v1/notifications/404/resend")).status_code == 404

    @pytest.mark.asyncio
    async def test_telegram_verify_without_channel(self, client):
        response = await client.post(
            "/api/v1/notifications/telegram/verify",
            json={"bot_token": "123:abc", "chat_id": "42"},
        )
        assert response.json()["success"] is False


class TestIntegrationEndpoints:
    """Tests for hardware integration management."""

    @pytest.mark.asyncio
    async def test_credentials_not_returned(self, client):
        barrier = await add_barrier(client, username="admin", password="secret", api_key="k")

        assert "password" not in barrier
        assert "api_key" not in barrier
        assert barrier["timeout_ms"] == 10000

        listed = (await client.get("/api/v1/integrations/barriers")).json()
        assert "password" not in listed["integrations"][0]

    @pytest.mark.asyncio
    async def test_primary_moves(self, client):
        first = await add_barrier(client)
        second = await add_barrier(client, name="Side gate")

        response = await client.post(f"/api/v1/integrations/barriers/{first['id']}/primary")
        assert response.status_code == 204

        listed = (await client.get("/api/v1/integrations/barriers")).json()["integrations"]
        primaries = {b["id"]: b["is_primary"] for b in listed}
        assert primaries == {first["id"]: True, second["id"]: False}

    @pytest.mark.asyncio
    async def test_primary_unknown(self, client):
        response = await client.post("/api/v1/integrations/cameras/77/primary")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_execute_and_test(self, client, controller):
        barrier = await add_barrier(client)

        executed = await client.post(
            f"/api/v1/integrations/barriers/{barrier['id']}/execute",
            json={"action": "close"},
        )
        tested = await client.post(f"/api/v1/integrations/barriers/{barrier['id']}/test")

        assert executed.json()["success"] is True
        assert tested.json() == {"success": True, "status": "open", "error": None}
        assert [r.url.path for r in controller.requests] == ["/api/barrier/close", "/api/barrier/status"]

    @pytest.mark.asyncio
    async def test_execute_unknown_barrier(self, client):
        response = await client.post("/api/v1/integrations/barriers/5/execute", json={"action": "open"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_camera_stream_and_missing_snapshot(self, client):
        created = await client.post(
            "/api/v1/integrations/cameras",
            json={"name": "Entrance", "type": "dahua", "host": "10.0.0.40"},
        )
        camera_id = created.json()["id"]

        stream = (await client.get(f"/api/v1/integrations/cameras/{camera_id}/stream")).json()
        assert stream["success"] is True
        assert stream["rtsp_url"].startswith("rtsp://10.0.0.40:554/cam/realmonitor")

        assert (await client.get("/api/v1/integrations/cameras/99/snapshot")).status_code == 404


class TestSettingsEndpoints:
    @pytest.mark.asyncio
    async def test_secret_masked(self, client):
        response = await client.put("/api/v1/settings/telegram_bot_token", json={"value": "123:secret"})

        assert response.status_code == 200
        assert response.json()["value"] == "********"
        assert (await client.get("/api/v1/settings/telegram_bot_token")).json()["value"] == "********"

    @pytest.mark.asyncio
    async def test_defaults_listed(self, client):
        settings = (await client.get("/api/v1/settings")).json()["settings"]
        values = {s["key"]: s["value"] for s in settings}

        assert values["quiet_hours_start"] == "22:00"
        assert values["unauthorized_attempt_threshold"] == "3"

    @pytest.mark.asyncio
    async def test_invalid_value(self, client):
        response = await client.put(
            "/api/v1/settings/unauthorized_attempt_threshold", json={"value": "zero"}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_boolean_normalized(self, client):
        response = await client.put("/api/v1/settings/telegram_enabled", json={"value": "Yes"})
        assert response.json()["value"] == "true"

    @pytest.mark.asyncio
    async def test_unknown_key(self, client):
        assert (await client.get("/api/v1/settings/no_such_key")).status_code == 404
