"""
Hardware use cases.

Runs barrier and camera operations through the vendor adapters, keeps the
integration status columns current and appends every barrier command to the
barrier action log. Nothing in here raises for hardware failures; callers
always get a typed result back.
"""

import asyncio

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import AmbiguousPrimaryError, NotFoundError
from gatekeeper.domain.models import (
    BarrierActionRecord,
    BarrierCommand,
    BarrierExecution,
    BarrierIntegration,
    BarrierResponse,
    BarrierType,
    CameraSnapshot,
    CameraStreamInfo,
    CameraType,
    IntegrationKind,
    IntegrationStatus,
    TriggeredBy,
    utc_now,
)
from gatekeeper.domain.services import select_primary
from gatekeeper.infrastructure.db.repository import (
    BarrierActionRepository,
    IntegrationRepository,
)
from gatekeeper.infrastructure.hardware import (
    BARRIER_ADAPTERS,
    CAMERA_ADAPTERS,
    BarrierAdapter,
    CameraAdapter,
)

logger = get_logger(__name__)

NO_PRIMARY_BARRIER = "No primary barrier integration configured"


def _status_for(success: bool, reachable: bool) -> IntegrationStatus:
    if success:
        return IntegrationStatus.ONLINE
    if not reachable:
        return IntegrationStatus.OFFLINE
    return IntegrationStatus.ERROR


class HardwareService:
    """
    Barrier and camera operations for one unit of work.

    Example:
        hardware = HardwareService(session, client)
        execution = await hardware.open_primary(TriggeredBy.AUTO)
    """

    def __init__(
        self,
        session: AsyncSession,
        client: httpx.AsyncClient,
        barrier_adapters: dict[BarrierType, BarrierAdapter] | None = None,
        camera_adapters: dict[CameraType, CameraAdapter] | None = None,
    ):
        """
        Args:
            session: Database session for integration and action records.
            client: Shared HTTP client for vendor calls.
            barrier_adapters: Optional replacement of the vendor lookup table.
            camera_adapters: Optional replacement of the camera lookup table.
        """
        self._integrations = IntegrationRepository(session)
        self._actions = BarrierActionRepository(session)
        self._client = client
        self._barrier_adapters = barrier_adapters if barrier_adapters is not None else BARRIER_ADAPTERS
        self._camera_adapters = camera_adapters if camera_adapters is not None else CAMERA_ADAPTERS

    async def execute_barrier(
        self,
        integration_id: int,
        command: BarrierCommand,
        triggered_by: TriggeredBy = TriggeredBy.API,
        actor: str | None = None,
        log_action: bool = True,
    ) -> BarrierExecution:
        """
        Run one command on a barrier integration.

        Args:
            integration_id: Barrier integration ID.
            command: Command to send.
            triggered_by: Source of the command, for the action log.
            actor: Operator name, if any.
            log_action: Append the command to the action log now. Decision
                flows pass False and log it once the passage exists.

        Returns:
            BarrierExecution: Adapter response; never raises.
        """
        integration = await self._integrations.get_barrier(integration_id)
        if integration is None:
            response = BarrierResponse(success=False, error="Integration not found")
        elif not integration.is_active:
            response = BarrierResponse(success=False, error="Integration is not active")
        else:
            adapter = self._barrier_adapters.get(integration.type)
            if adapter is None:
                response = BarrierResponse(
                    success=False,
                    error=f"Unsupported barrier type: {integration.type.value}",
                )
            else:
                response = await self._run_barrier(adapter, integration, command)
                await self._integrations.update_status(
                    IntegrationKind.BARRIER,
                    integration_id,
                    _status_for(response.success, response.reachable),
                    response.error,
                    utc_now(),
                )

        logger.info(
            "barrier_command_executed",
            integration_id=integration_id,
            command=command.value,
            success=response.success,
            error=response.error,
        )

        execution = BarrierExecution(
            command=command,
            response=response,
            integration_id=integration_id if integration is not None else None,
        )
        if log_action:
            await self.log_action(execution, triggered_by, actor)
        return execution

    async def _run_barrier(
        self,
        adapter: BarrierAdapter,
        integration: BarrierIntegration,
        command: BarrierCommand,
    ) -> BarrierResponse:
        try:
            return await asyncio.wait_for(
                adapter.execute(integration, command, self._client),
                timeout=integration.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return BarrierResponse(
                success=False,
                error=f"Timed out after {integration.timeout_ms} ms",
                reachable=False,
            )
        except Exception as e:
            logger.error(
                "barrier_adapter_failed",
                integration_id=integration.id,
                command=command.value,
                error=str(e),
            )
            return BarrierResponse(success=False, error=str(e))

    async def open_primary(
        self,
        triggered_by: TriggeredBy,
        actor: str | None = None,
    ) -> BarrierExecution:
        """
        Open the primary barrier.

        Automatic and manual flows only. The action is not logged here; the
        caller logs it with the passage it belongs to.
        """
        barriers = await self._integrations.list_barriers(active_only=True)
        try:
            primary = select_primary(barriers)
        except AmbiguousPrimaryError as e:
            logger.error("ambiguous_primary_barrier", integration_ids=e.integration_ids)
            primary = None

        if primary is None:
            logger.warning("no_primary_barrier", triggered_by=triggered_by.value)
            return BarrierExecution(
                command=BarrierCommand.OPEN,
                response=BarrierResponse(success=False, error=NO_PRIMARY_BARRIER),
            )

        return await self.execute_barrier(
            primary.id,
            BarrierCommand.OPEN,
            triggered_by=triggered_by,
            actor=actor,
            log_action=False,
        )

    async def log_action(
        self,
        execution: BarrierExecution,
        triggered_by: TriggeredBy,
        actor: str | None = None,
        passage_id: int | None = None,
    ) -> BarrierActionRecord:
        return await self._actions.create(
            BarrierActionRecord(
                command=execution.command,
                triggered_by=triggered_by,
                success=execution.response.success,
                integration_id=execution.integration_id,
                actor=actor,
                passage_id=passage_id,
                error_message=execution.response.error,
            )
        )

    async def test_barrier(self, integration_id: int, actor: str | None = None) -> BarrierResponse:
        """Connectivity test: the status command."""
        execution = await self.execute_barrier(
            integration_id,
            BarrierCommand.STATUS,
            triggered_by=TriggeredBy.API,
            actor=actor,
        )
        return execution.response

    async def snapshot(self, integration_id: int) -> CameraSnapshot:
        """Fetch one frame and record the camera's status."""
        integration = await self._integrations.get_camera(integration_id)
        if integration is None:
            raise NotFoundError(f"Camera integration {integration_id} not found")
        if not integration.is_active:
            return CameraSnapshot(success=False, error="Integration is not active")

        adapter = self._camera_adapters.get(integration.type)
        if adapter is None:
            return CameraSnapshot(
                success=False,
                error=f"Unsupported camera type: {integration.type.value}",
            )

        try:
            result = await asyncio.wait_for(
                adapter.snapshot(integration, self._client),
                timeout=integration.timeout_seconds,
            )
        except asyncio.TimeoutError:
            result = CameraSnapshot(
                success=False,
                error=f"Timed out after {integration.timeout_ms} ms",
                reachable=False,
            )
        except Exception as e:
            logger.error("camera_adapter_failed", integration_id=integration_id, error=str(e))
            result = CameraSnapshot(success=False, error=str(e))

        await self._integrations.update_status(
            IntegrationKind.CAMERA,
            integration_id,
            _status_for(result.success, result.reachable),
            result.error,
            utc_now(),
        )
        return result

    async def test_camera(self, integration_id: int) -> CameraSnapshot:
        """Connectivity test: one snapshot."""
        return await self.snapshot(integration_id)

    async def stream_info(self, integration_id: int) -> CameraStreamInfo:
        integration = await self._integrations.get_camera(integration_id)
        if integration is None:
            raise NotFoundError(f"Camera integration {integration_id} not found")

        adapter = self._camera_adapters.get(integration.type)
        if adapter is None:
            return CameraStreamInfo(
                success=False,
                error=f"Unsupported camera type: {integration.type.value}",
            )
        return adapter.stream_info(integration)

    async def set_primary(self, kind: IntegrationKind, integration_id: int) -> None:
        """
        Raises:
            NotFoundError: If the integration does not exist.
        """
        if not await self._integrations.set_primary(kind, integration_id):
            raise NotFoundError(f"{kind.value.capitalize()} integration {integration_id} not found")
        logger.info("primary_integration_set", kind=kind.value, integration_id=integration_id)
