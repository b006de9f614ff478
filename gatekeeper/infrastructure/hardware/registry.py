"""
Adapter lookup tables.

Vendor dispatch happens here and only here: callers ask for the adapter of
an integration's type tag instead of branching on the vendor themselves.
"""

from gatekeeper.domain.models import BarrierType, CameraType
from gatekeeper.infrastructure.hardware.barriers import (
    BftBarrierAdapter,
    CameBarrierAdapter,
    CustomHttpBarrierAdapter,
    DoorhanBarrierAdapter,
    GpioBarrierAdapter,
    NiceBarrierAdapter,
)
from gatekeeper.infrastructure.hardware.base import BarrierAdapter, CameraAdapter
from gatekeeper.infrastructure.hardware.cameras import (
    AxisCameraAdapter,
    CustomHttpCameraAdapter,
    CustomRtspCameraAdapter,
    DahuaCameraAdapter,
    HikvisionCameraAdapter,
    OnvifCameraAdapter,
)

BARRIER_ADAPTERS: dict[BarrierType, BarrierAdapter] = {
    BarrierType.CAME: CameBarrierAdapter(),
    BarrierType.NICE: NiceBarrierAdapter(),
    BarrierType.BFT: BftBarrierAdapter(),
    BarrierType.DOORHAN: DoorhanBarrierAdapter(),
    BarrierType.GPIO: GpioBarrierAdapter(),
    BarrierType.CUSTOM_HTTP: CustomHttpBarrierAdapter(),
}

CAMERA_ADAPTERS: dict[CameraType, CameraAdapter] = {
    CameraType.HIKVISION: HikvisionCameraAdapter(),
    CameraType.DAHUA: DahuaCameraAdapter(),
    CameraType.AXIS: AxisCameraAdapter(),
    CameraType.ONVIF: OnvifCameraAdapter(),
    CameraType.CUSTOM_RTSP: CustomRtspCameraAdapter(),
    CameraType.CUSTOM_HTTP: CustomHttpCameraAdapter(),
}
