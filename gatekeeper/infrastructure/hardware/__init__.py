"""Barrier and camera adapters."""

from gatekeeper.infrastructure.hardware.base import (
    BarrierAdapter,
    CameraAdapter,
    HttpBarrierAdapter,
    IntegrationConfigError,
)
from gatekeeper.infrastructure.hardware.registry import BARRIER_ADAPTERS, CAMERA_ADAPTERS

__all__ = [
    "BarrierAdapter",
    "CameraAdapter",
    "HttpBarrierAdapter",
    "IntegrationConfigError",
    "BARRIER_ADAPTERS",
    "CAMERA_ADAPTERS",
]
