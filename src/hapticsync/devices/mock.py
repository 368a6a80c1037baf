"""In-process device client that records every operation.

Used by the test suite and by the server when no real device client is
plugged in.
"""

import logging
from typing import Any, List, Optional, Set, Tuple

from ..common.exceptions import DeviceError
from .base import (
    Capability,
    Device,
    DeviceClient,
    LaunchResult,
    MotorAttribute,
    ServerLauncher,
)

logger = logging.getLogger(__name__)


class MockDevice(Device):
    """Device that records calls as ``(operation, *args)`` tuples"""

    def __init__(self, index: int, name: str, motors: int = 1, capabilities=None):
        if capabilities is None:
            capabilities = {Capability.VIBRATE}
        capabilities = frozenset(capabilities)
        motor_list = (
            [MotorAttribute(i) for i in range(motors)]
            if Capability.VIBRATE in capabilities
            else []
        )
        super().__init__(
            index=index,
            name=name,
            capabilities=capabilities,
            vibrate_attributes=motor_list,
        )
        self.calls: List[Tuple[Any, ...]] = []
        self.failing: Set[str] = set()

    def _record(self, operation: str, *args) -> None:
        if operation in self.failing:
            raise DeviceError(f"{self.name}: {operation} failed")
        self.calls.append((operation, *args))

    async def vibrate(self, intensity: float) -> None:
        self._record("vibrate", round(intensity, 4))

    async def scalar(self, motor_index: int, intensity: float) -> None:
        self._record("scalar", motor_index, round(intensity, 4))

    async def oscillate(self, intensity: float) -> None:
        self._record("oscillate", round(intensity, 4))

    async def linear(self, position: float, duration_ms: int) -> None:
        self._record("linear", round(position, 4), duration_ms)

    def ops(self, operation: str) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == operation]


class MockDeviceClient(DeviceClient):
    def __init__(self, devices: Optional[List[Device]] = None, connected: bool = True):
        super().__init__()
        self._connected = connected
        self.devices: List[Device] = list(devices or [])
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.stop_all_calls = 0

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self.connect_calls += 1
        self._connected = True
        for device in self.devices:
            self._notify(self._added, device)
        logger.info("Mock client connected")

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False
        for device in list(self.devices):
            self._notify(self._removed, device)
        logger.info("Mock client disconnected")

    async def stop_all(self) -> None:
        self.stop_all_calls += 1
        for device in self.devices:
            await device.stop()

    def add_device(self, device: Device) -> None:
        self.devices.append(device)
        self._notify(self._added, device)

    def remove_device(self, device: Device) -> None:
        self.devices = [d for d in self.devices if d.index != device.index]
        self._notify(self._removed, device)


class MockLauncher(ServerLauncher):
    def __init__(self, success: bool = True):
        self.success = success
        self.start_calls = 0

    async def start(self) -> LaunchResult:
        self.start_calls += 1
        if not self.success:
            return LaunchResult(success=False, error="launch disabled")
        return LaunchResult(success=True, pid=4242)
