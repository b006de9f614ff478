"""
Hardware adapter interfaces.

One capability interface per device kind: barriers execute open, close and
status commands; cameras take snapshots and describe their streams. Vendor
classes only describe how a command maps onto HTTP. Sending the request and
turning transport failures into typed results happens here, once.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

import httpx

from gatekeeper.core.logging import get_logger
from gatekeeper.domain.models import (
    BarrierCommand,
    BarrierIntegration,
    BarrierResponse,
    CameraIntegration,
    CameraSnapshot,
    CameraStreamInfo,
)

logger = get_logger(__name__)


class IntegrationConfigError(Exception):
    """The integration lacks a parameter the vendor binding needs."""


@dataclass(frozen=True)
class VendorRequest:
    """HTTP request a vendor binding wants sent."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    auth: httpx.Auth | None = None
    json: dict[str, Any] | None = None


def basic_auth(username: str | None, password: str | None) -> httpx.Auth | None:
    if not username:
        return None
    return httpx.BasicAuth(username, password or "")


def parse_device_status(response: httpx.Response) -> str:
    """Device state from a JSON ``status`` field, ``unknown`` otherwise."""
    try:
        payload = response.json()
    except ValueError:
        return "unknown"
    if isinstance(payload, dict) and payload.get("status"):
        return str(payload["status"])
    return "unknown"


class BarrierAdapter(ABC):
    """Barrier controller capability."""

    @abstractmethod
    async def execute(
        self,
        integration: BarrierIntegration,
        command: BarrierCommand,
        client: httpx.AsyncClient,
    ) -> BarrierResponse:
        """
        Run one command against the controller.

        Never raises for transport problems; every failure is returned as
        ``BarrierResponse(success=False, error=...)``.
        """


class HttpBarrierAdapter(BarrierAdapter):
    """
    Barrier controller reached over HTTP.

    Subclasses set ``command_paths`` and override ``auth``/``headers`` for
    their authentication scheme. Status is a GET, open and close are POSTs.
    Paths configured on the integration override the vendor defaults.
    """

    default_port: ClassVar[int] = 80
    command_paths: ClassVar[dict[BarrierCommand, str]] = {}

    def base_url(self, integration: BarrierIntegration) -> str:
        if not integration.host:
            raise IntegrationConfigError("Integration host is not configured")
        return f"http://{integration.host}:{integration.port or self.default_port}"

    def path_for(self, integration: BarrierIntegration, command: BarrierCommand) -> str:
        configured = {
            BarrierCommand.OPEN: integration.open_command,
            BarrierCommand.CLOSE: integration.close_command,
            BarrierCommand.STATUS: integration.status_command,
        }[command]
        path = configured or self.command_paths.get(command)
        if not path:
            raise IntegrationConfigError(f"No endpoint configured for action: {command.value}")
        return path

    def auth(self, integration: BarrierIntegration) -> httpx.Auth | None:
        return basic_auth(integration.username, integration.password)

    def headers(self, integration: BarrierIntegration) -> dict[str, str]:
        return {}

    def build_request(
        self,
        integration: BarrierIntegration,
        command: BarrierCommand,
    ) -> VendorRequest:
        path = self.path_for(integration, command)
        url = path if path.startswith(("http://", "https://")) else self.base_url(integration) + path
        return VendorRequest(
            method="GET" if command == BarrierCommand.STATUS else "POST",
            url=url,
            headers=self.headers(integration),
            auth=self.auth(integration),
        )

    async def execute(
        self,
        integration: BarrierIntegration,
        command: BarrierCommand,
        client: httpx.AsyncClient,
    ) -> BarrierResponse:
        try:
            request = self.build_request(integration, command)
        except IntegrationConfigError as e:
            return BarrierResponse(success=False, error=str(e))

        try:
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                auth=request.auth,
                json=request.json,
                timeout=integration.timeout_seconds,
            )
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning(
                "barrier_timeout",
                integration_id=integration.id,
                command=command.value,
                timeout_ms=integration.timeout_ms,
            )
            return BarrierResponse(
                success=False,
                error=f"Timed out after {integration.timeout_ms} ms",
                reachable=False,
            )
        except httpx.HTTPStatusError as e:
            logger.warning(
                "barrier_http_error",
                integration_id=integration.id,
                command=command.value,
                status_code=e.response.status_code,
            )
            return BarrierResponse(success=False, error=f"Controller returned HTTP {e.response.status_code}")
        except httpx.TransportError as e:
            logger.warning(
                "barrier_unreachable",
                integration_id=integration.id,
                command=command.value,
                error=str(e),
            )
            return BarrierResponse(success=False, error=f"Connection failed: {e}", reachable=False)
        except httpx.HTTPError as e:
            return BarrierResponse(success=False, error=str(e))

        return BarrierResponse(success=True, status=parse_device_status(response))


class CameraAdapter(ABC):
    """
    Camera capability.

    Subclasses describe their snapshot and stream URLs; fetching the
    snapshot is shared.
    """

    default_port: ClassVar[int] = 80
    rtsp_port: ClassVar[int] = 554

    def base_url(self, integration: CameraIntegration) -> str:
        if not integration.host:
            raise IntegrationConfigError("Camera host is not configured")
        return f"http://{integration.host}:{integration.port or self.default_port}"

    def rtsp_base(self, integration: CameraIntegration) -> str:
        if not integration.host:
            raise IntegrationConfigError("Camera host is not configured")
        credentials = ""
        if integration.username:
            credentials = f"{integration.username}:{integration.password or ''}@"
        return f"rtsp://{credentials}{integration.host}:{self.rtsp_port}"

    @abstractmethod
    def snapshot_url(self, integration: CameraIntegration) -> str:
        """URL returning a single JPEG frame."""

    @abstractmethod
    def stream_urls(self, integration: CameraIntegration) -> tuple[str | None, str | None]:
        """``(rtsp_url, http_url)`` of the live stream."""

    def stream_info(self, integration: CameraIntegration) -> CameraStreamInfo:
        try:
            rtsp_url, http_url = self.stream_urls(integration)
            snapshot_url = self.snapshot_url(integration)
        except IntegrationConfigError as e:
            return CameraStreamInfo(success=False, error=str(e))
        return CameraStreamInfo(
            success=True,
            rtsp_url=rtsp_url,
            http_url=http_url,
            snapshot_url=snapshot_url,
        )

    async def snapshot(
        self,
        integration: CameraIntegration,
        client: httpx.AsyncClient,
    ) -> CameraSnapshot:
        """Fetch one frame; failures are returned, never raised."""
        try:
            url = self.snapshot_url(integration)
        except IntegrationConfigError as e:
            return CameraSnapshot(success=False, error=str(e))

        try:
            response = await client.get(
                url,
                auth=basic_auth(integration.username, integration.password),
                timeout=integration.timeout_seconds,
            )
            response.raise_for_status()
        except httpx.TimeoutException:
            return CameraSnapshot(
                success=False,
                error=f"Timed out after {integration.timeout_ms} ms",
                reachable=False,
            )
        except httpx.HTTPStatusError as e:
            return CameraSnapshot(success=False, error=f"Camera returned HTTP {e.response.status_code}")
        except httpx.TransportError as e:
            return CameraSnapshot(success=False, error=f"Connection failed: {e}", reachable=False)
        except httpx.HTTPError as e:
            return CameraSnapshot(success=False, error=str(e))

        if not response.content:
            return CameraSnapshot(success=False, error="Camera returned an empty image")
        return CameraSnapshot(
            success=True,
            image=response.content,
            content_type=response.headers.get("content-type", "image/jpeg"),
        )
