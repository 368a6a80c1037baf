from .base import (
    Capability,
    Device,
    DeviceClient,
    LaunchResult,
    MotorAttribute,
    ServerLauncher,
)
from .mock import MockDevice, MockDeviceClient, MockLauncher
from .registry import DeviceRegistry

__all__ = [
    "Capability",
    "Device",
    "DeviceClient",
    "LaunchResult",
    "MotorAttribute",
    "ServerLauncher",
    "MockDevice",
    "MockDeviceClient",
    "MockLauncher",
    "DeviceRegistry",
]
