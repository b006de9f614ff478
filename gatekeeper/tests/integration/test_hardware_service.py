"""
Integration tests for HardwareService.

Integration rows live in SQLite; vendor calls go to mocked transports.
"""

import asyncio

import httpx
import pytest
from sqlalchemy import update

from gatekeeper.application.hardware_service import NO_PRIMARY_BARRIER, HardwareService
from gatekeeper.domain.exceptions import NotFoundError
from gatekeeper.domain.models import (
    BarrierCommand,
    BarrierIntegration,
    BarrierResponse,
    BarrierType,
    CameraIntegration,
    CameraType,
    IntegrationKind,
    IntegrationStatus,
    TriggeredBy,
)
from gatekeeper.infrastructure.db.models import BarrierIntegrationDB
from gatekeeper.infrastructure.db.repository import BarrierActionRepository, IntegrationRepository
from gatekeeper.infrastructure.hardware import BarrierAdapter

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


class SlowAdapter(BarrierAdapter):
    """Adapter that never answers in time."""

    async def execute(self, integration, command, client):
        await asyncio.sleep(5)
        return BarrierResponse(success=True)


class BrokenAdapter(BarrierAdapter):
    async def execute(self, integration, command, client):
        raise RuntimeError("driver crashed")


@pytest.fixture
def hardware(db_session, barrier_client) -> HardwareService:
    return HardwareService(db_session, barrier_client)


@pytest.fixture
async def camera(db_session) -> CameraIntegration:
    return await IntegrationRepository(db_session).create_camera(
        CameraIntegration(
            name="Entrance",
            type=CameraType.HIKVISION,
            host="10.0.0.30",
            username="viewer",
            password="pw",
            is_primary=True,
        )
    )


class TestExecuteBarrier:
    """Tests for HardwareService.execute_barrier."""

    @pytest.mark.asyncio
    async def test_success_updates_status_and_logs(
        self, hardware, db_session, controller, primary_barrier
    ):
        execution = await hardware.execute_barrier(
            primary_barrier.id, BarrierCommand.CLOSE, actor="operator"
        )

        assert execution.response.success is True
        assert execution.integration_id == primary_barrier.id
        assert controller.requests[0].url.path == "/api/barrier/close"

        stored = await IntegrationRepository(db_session).get_barrier(primary_barrier.id)
        assert stored.last_status == IntegrationStatus.ONLINE
        assert stored.last_error is None
        assert stored.last_status_check is not None

        [action] = await BarrierActionRepository(db_session).list_recent()
        assert action.command == BarrierCommand.CLOSE
        assert action.triggered_by == TriggeredBy.API
        assert action.actor == "operator"
        assert action.success is True

    @pytest.mark.asyncio
    async def test_http_error_marks_error(self, hardware, db_session, controller, primary_barrier):
        controller.status_code = 503

        execution = await hardware.execute_barrier(primary_barrier.id, BarrierCommand.OPEN)

        assert execution.response.success is False
        stored = await IntegrationRepository(db_session).get_barrier(primary_barrier.id)
        assert stored.last_status == IntegrationStatus.ERROR
        assert stored.last_error == "Controller returned HTTP 503"

    @pytest.mark.asyncio
    async def test_unreachable_marks_offline(self, hardware, db_session, controller, primary_barrier):
        controller.error = httpx.ConnectError("connection refused")

        execution = await hardware.execute_barrier(primary_barrier.id, BarrierCommand.OPEN)

        assert execution.response.reachable is False
        stored = await IntegrationRepository(db_session).get_barrier(primary_barrier.id)
        assert stored.last_status == IntegrationStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_missing_integration(self, hardware, db_session):
        execution = await hardware.execute_barrier(42, BarrierCommand.OPEN)

        assert execution.integration_id is None
        assert execution.response.error == "Integration not found"
        [action] = await BarrierActionRepository(db_session).list_recent()
        assert action.success is False

    @pytest.mark.asyncio
    async def test_inactive_integration(self, hardware, db_session, controller):
        barrier = await IntegrationRepository(db_session).create_barrier(
            BarrierIntegration(name="Old gate", type=BarrierType.NICE, host="10.0.0.21", is_active=False)
        )

        execution = await hardware.execute_barrier(barrier.id, BarrierCommand.OPEN)

        assert execution.response.error == "Integration is not active"
        assert controller.requests == []

    @pytest.mark.asyncio
    async def test_skip_logging(self, hardware, db_session, primary_barrier):
        await hardware.execute_barrier(primary_barrier.id, BarrierCommand.OPEN, log_action=False)
        assert await BarrierActionRepository(db_session).list_recent() == []

    @pytest.mark.asyncio
    async def test_adapter_timeout_enforced(self, db_session, barrier_client):
        barrier = await IntegrationRepository(db_session).create_barrier(
            BarrierIntegration(name="Slow", type=BarrierType.CAME, host="10.0.0.22", timeout_ms=100)
        )
        hardware = HardwareService(db_session, barrier_client, barrier_adapters={BarrierType.CAME: SlowAdapter()})

        execution = await hardware.execute_barrier(barrier.id, BarrierCommand.OPEN)

        assert execution.response.success is False
        assert execution.response.error == "Timed out after 100 ms"
        stored = await IntegrationRepository(db_session).get_barrier(barrier.id)
        assert stored.last_status == IntegrationStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_adapter_exception_contained(self, db_session, barrier_client, primary_barrier):
        hardware = HardwareService(
            db_session, barrier_client, barrier_adapters={BarrierType.CAME: BrokenAdapter()}
        )

        execution = await hardware.execute_barrier(primary_barrier.id, BarrierCommand.OPEN)

        assert execution.response.success is False
        assert execution.response.error == "driver crashed"

    @pytest.mark.asyncio
    async def test_unsupported_type(self, db_session, barrier_client, primary_barrier):
        hardware = HardwareService(db_session, barrier_client, barrier_adapters={})

        execution = await hardware.execute_barrier(primary_barrier.id, BarrierCommand.OPEN)

        assert execution.response.error == "Unsupported barrier type: came"


class TestOpenPrimary:
    """Tests for HardwareService.open_primary."""

    @pytest.mark.asyncio
    async def test_opens_primary_without_logging(self, hardware, db_session, controller, primary_barrier):
        await IntegrationRepository(db_session).create_barrier(
            BarrierIntegration(name="Side gate", type=BarrierType.BFT, host="10.0.0.23")
        )

        execution = await hardware.open_primary(TriggeredBy.AUTO)

        assert execution.response.success is True
        assert execution.integration_id == primary_barrier.id
        assert controller.requests[0].url.host == "10.0.0.20"
        assert await BarrierActionRepository(db_session).list_recent() == []

    @pytest.mark.asyncio
    async def test_no_primary(self, hardware, controller):
        execution = await hardware.open_primary(TriggeredBy.MANUAL, "operator")

        assert execution.response.error == NO_PRIMARY_BARRIER
        assert execution.integration_id is None
        assert controller.requests == []

    @pytest.mark.asyncio
    async def test_several_primaries_treated_as_none(self, hardware, db_session, controller, primary_barrier):
        """Rows written outside the API can end up with two primaries."""
        second = await IntegrationRepository(db_session).create_barrier(
            BarrierIntegration(name="Second", type=BarrierType.CAME, host="10.0.0.24")
        )
        await db_session.execute(
            update(BarrierIntegrationDB).where(BarrierIntegrationDB.id == second.id).values(is_primary=True)
        )

        execution = await hardware.open_primary(TriggeredBy.AUTO)

        assert execution.response.error == NO_PRIMARY_BARRIER
        assert controller.requests == []


class TestBarrierTest:
    @pytest.mark.asyncio
    async def test_sends_status_command(self, hardware, db_session, controller, primary_barrier):
        response = await hardware.test_barrier(primary_barrier.id, actor="operator")

        assert response.success is True
        assert response.status == "open"
        assert controller.requests[0].method == "GET"
        assert controller.requests[0].url.path == "/api/barrier/status"
        [action] = await BarrierActionRepository(db_session).list_recent()
        assert action.command == BarrierCommand.STATUS


class TestCameras:
    """Tests for camera operations."""

    @pytest.fixture
    async def camera_client(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/picture"):
                return httpx.Response(200, content=JPEG, headers={"content-type": "image/jpeg"})
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            yield client

    @pytest.mark.asyncio
    async def test_snapshot(self, db_session, camera_client, camera):
        hardware = HardwareService(db_session, camera_client)

        snapshot = await hardware.snapshot(camera.id)

        assert snapshot.success is True
        assert snapshot.image == JPEG
        assert snapshot.content_type == "image/jpeg"
        stored = await IntegrationRepository(db_session).get_camera(camera.id)
        assert stored.last_status == IntegrationStatus.ONLINE

    @pytest.mark.asyncio
    async def test_snapshot_error_status(self, db_session, camera_client):
        camera = await IntegrationRepository(db_session).create_camera(
            CameraIntegration(name="Yard", type=CameraType.AXIS, host="10.0.0.31")
        )
        hardware = HardwareService(db_session, camera_client)

        snapshot = await hardware.test_camera(camera.id)

        assert snapshot.success is False
        assert snapshot.error == "Camera returned HTTP 404"
        stored = await IntegrationRepository(db_session).get_camera(camera.id)
        assert stored.last_status == IntegrationStatus.ERROR

    @pytest.mark.asyncio
    async def test_snapshot_missing_camera(self, hardware):
        with pytest.raises(NotFoundError):
            await hardware.snapshot(7)

    @pytest.mark.asyncio
    async def test_stream_info(self, hardware, camera):
        info = await hardware.stream_info(camera.id)

        assert info.success is True
        assert info.rtsp_url == "rtsp://viewer:pw@10.0.0.30:554/Streaming/Channels/101"
        assert info.snapshot_url == "http://10.0.0.30:80/ISAPI/Streaming/channels/101/picture"

    @pytest.mark.asyncio
    async def test_custom_rtsp_without_url(self, hardware, db_session):
        camera = await IntegrationRepository(db_session).create_camera(
            CameraIntegration(name="Custom", type=CameraType.CUSTOM_RTSP)
        )

        info = await hardware.stream_info(camera.id)

        assert info.success is False


class TestSetPrimary:
    @pytest.mark.asyncio
    async def test_moves_primary_flag(self, hardware, db_session, primary_barrier):
        other = await IntegrationRepository(db_session).create_barrier(
            BarrierIntegration(name="Side gate", type=BarrierType.BFT, host="10.0.0.23")
        )

        await hardware.set_primary(IntegrationKind.BARRIER, other.id)

        repo = IntegrationRepository(db_session)
        assert (await repo.get_barrier(other.id)).is_primary is True
        assert (await repo.get_barrier(primary_barrier.id)).is_primary is False

    @pytest.mark.asyncio
    async def test_missing(self, hardware):
        with pytest.raises(NotFoundError, match="Camera integration 9 not found"):
            await hardware.set_primary(IntegrationKind.CAMERA, 9)
