"""Vendor bindings for cameras."""

from gatekeeper.domain.models import CameraIntegration
from gatekeeper.infrastructure.hardware.base import CameraAdapter, IntegrationConfigError


class HikvisionCameraAdapter(CameraAdapter):
    """Hikvision ISAPI."""

    def snapshot_url(self, integration: CameraIntegration) -> str:
        if integration.http_snapshot_url:
            return integration.http_snapshot_url
        return f"{self.base_url(integration)}/ISAPI/Streaming/channels/{integration.stream_channel}01/picture"

    def stream_urls(self, integration: CameraIntegration) -> tuple[str | None, str | None]:
        # subtype 0 is the main stream, Hikvision numbers it 1
        channel = f"{integration.stream_channel}0{integration.stream_subtype + 1}"
        rtsp_url = integration.rtsp_url or f"{self.rtsp_base(integration)}/Streaming/Channels/{channel}"
        http_url = f"{self.base_url(integration)}/ISAPI/Streaming/channels/{channel}/httpPreview"
        return rtsp_url, http_url


class DahuaCameraAdapter(CameraAdapter):
    """Dahua CGI API."""

    def snapshot_url(self, integration: CameraIntegration) -> str:
        if integration.http_snapshot_url:
            return integration.http_snapshot_url
        return f"{self.base_url(integration)}/cgi-bin/snapshot.cgi?channel={integration.stream_channel}"

    def stream_urls(self, integration: CameraIntegration) -> tuple[str | None, str | None]:
        query = f"channel={integration.stream_channel}&subtype={integration.stream_subtype}"
        rtsp_url = integration.rtsp_url or f"{self.rtsp_base(integration)}/cam/realmonitor?{query}"
        http_url = f"{self.base_url(integration)}/cgi-bin/mjpg/video.cgi?{query}"
        return rtsp_url, http_url


class AxisCameraAdapter(CameraAdapter):
    """Axis VAPIX."""

    def snapshot_url(self, integration: CameraIntegration) -> str:
        if integration.http_snapshot_url:
            return integration.http_snapshot_url
        return f"{self.base_url(integration)}/axis-cgi/jpg/image.cgi"

    def stream_urls(self, integration: CameraIntegration) -> tuple[str | None, str | None]:
        rtsp_url = integration.rtsp_url or f"{self.rtsp_base(integration)}/axis-media/media.amp"
        return rtsp_url, f"{self.base_url(integration)}/axis-cgi/mjpg/video.cgi"


class OnvifCameraAdapter(CameraAdapter):
    """Generic ONVIF device with an HTTP snapshot URI."""

    def snapshot_url(self, integration: CameraIntegration) -> str:
        if integration.http_snapshot_url:
            return integration.http_snapshot_url
        return f"{self.base_url(integration)}/onvif/snapshot"

    def stream_urls(self, integration: CameraIntegration) -> tuple[str | None, str | None]:
        rtsp_url = integration.rtsp_url or (
            f"{self.rtsp_base(integration)}/onvif/profile{integration.stream_channel}/media.smp"
        )
        return rtsp_url, self.snapshot_url(integration)


class CustomRtspCameraAdapter(CameraAdapter):
    """RTSP camera with explicitly configured URLs."""

    def snapshot_url(self, integration: CameraIntegration) -> str:
        if not integration.http_snapshot_url:
            raise IntegrationConfigError("No snapshot URL configured for custom RTSP camera")
        return integration.http_snapshot_url

    def stream_urls(self, integration: CameraIntegration) -> tuple[str | None, str | None]:
        if not integration.rtsp_url:
            raise IntegrationConfigError("No RTSP URL configured for custom RTSP camera")
        return integration.rtsp_url, None


class CustomHttpCameraAdapter(CameraAdapter):
    """HTTP-only camera with an explicitly configured snapshot URL."""

    def snapshot_url(self, integration: CameraIntegration) -> str:
        if not integration.http_snapshot_url:
            raise IntegrationConfigError("No snapshot URL configured for custom HTTP camera")
        return integration.http_snapshot_url

    def stream_urls(self, integration: CameraIntegration) -> tuple[str | None, str | None]:
        return integration.rtsp_url, self.snapshot_url(integration)
