"""Vendor bindings for barrier controllers."""

import httpx

from gatekeeper.domain.models import BarrierCommand, BarrierIntegration
from gatekeeper.infrastructure.hardware.base import (
    HttpBarrierAdapter,
    IntegrationConfigError,
    VendorRequest,
)


class CameBarrierAdapter(HttpBarrierAdapter):
    """CAME controllers: REST paths under /api/barrier, HTTP Basic auth."""

    command_paths = {
        BarrierCommand.OPEN: "/api/barrier/open",
        BarrierCommand.CLOSE: "/api/barrier/close",
        BarrierCommand.STATUS: "/api/barrier/status",
    }


class NiceBarrierAdapter(HttpBarrierAdapter):
    """Nice controllers: API key in the ``X-API-Key`` header."""

    command_paths = {
        BarrierCommand.OPEN: "/nice/open",
        BarrierCommand.CLOSE: "/nice/close",
        BarrierCommand.STATUS: "/nice/status",
    }

    def auth(self, integration: BarrierIntegration) -> httpx.Auth | None:
        return None

    def headers(self, integration: BarrierIntegration) -> dict[str, str]:
        return {"X-API-Key": integration.api_key} if integration.api_key else {}


class BftBarrierAdapter(HttpBarrierAdapter):
    """BFT controllers: command endpoints under /bft/command, HTTP Basic auth."""

    command_paths = {
        BarrierCommand.OPEN: "/bft/command/open",
        BarrierCommand.CLOSE: "/bft/command/close",
        BarrierCommand.STATUS: "/bft/status",
    }


class DoorhanBarrierAdapter(HttpBarrierAdapter):
    """Doorhan controllers: bearer token."""

    command_paths = {
        BarrierCommand.OPEN: "/doorhan/open",
        BarrierCommand.CLOSE: "/doorhan/close",
        BarrierCommand.STATUS: "/doorhan/status",
    }

    def auth(self, integration: BarrierIntegration) -> httpx.Auth | None:
        return None

    def headers(self, integration: BarrierIntegration) -> dict[str, str]:
        return {"Authorization": f"Bearer {integration.api_key}"} if integration.api_key else {}


class GpioBarrierAdapter(HttpBarrierAdapter):
    """
    Relay on a GPIO bridge.

    Every command is a POST of a pulse descriptor to ``/gpio`` on the bridge
    (``api_endpoint``, or ``http://localhost:<port>``).
    """

    default_port = 8080

    def base_url(self, integration: BarrierIntegration) -> str:
        if integration.api_endpoint:
            return integration.api_endpoint.rstrip("/")
        return f"http://localhost:{integration.port or self.default_port}"

    def build_request(
        self,
        integration: BarrierIntegration,
        command: BarrierCommand,
    ) -> VendorRequest:
        if integration.gpio_pin is None:
            raise IntegrationConfigError("GPIO pin is not configured")
        return VendorRequest(
            method="POST",
            url=f"{self.base_url(integration)}/gpio",
            json={
                "pin": integration.gpio_pin,
                "action": command.value,
                "activeHigh": integration.gpio_active_high,
                "duration": integration.open_duration_ms,
            },
        )


class CustomHttpBarrierAdapter(HttpBarrierAdapter):
    """
    Generic HTTP controller.

    Has no default paths: every command must be configured on the
    integration. Sends a bearer token and/or Basic credentials when set.
    """

    command_paths = {}

    def base_url(self, integration: BarrierIntegration) -> str:
        if integration.api_endpoint:
            return integration.api_endpoint.rstrip("/")
        return super().base_url(integration)

    def headers(self, integration: BarrierIntegration) -> dict[str, str]:
        return {"Authorization": f"Bearer {integration.api_key}"} if integration.api_key else {}
