"""Boundary to the external device-control client.

Device discovery, pairing and transport belong to the client. This package
only consumes capability-described handles and connection events.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional


class Capability(str, Enum):
    VIBRATE = "vibrate"
    OSCILLATE = "oscillate"
    LINEAR = "linear"


@dataclass(frozen=True)
class MotorAttribute:
    """Descriptor of one vibration motor"""

    index: int
    step_count: int = 20


class Device(ABC):
    """Capability-described actuator handle.

    Intensities and positions are floats in [0, 1]; durations are ms.
    """

    def __init__(
        self,
        index: int,
        name: str,
        display_name: Optional[str] = None,
        capabilities: FrozenSet[Capability] = frozenset({Capability.VIBRATE}),
        vibrate_attributes: Optional[List[MotorAttribute]] = None,
    ):
        self.index = index
        self.name = name
        self.display_name = display_name or name
        self.capabilities = frozenset(capabilities)
        if vibrate_attributes is None:
            vibrate_attributes = (
                [MotorAttribute(0)] if Capability.VIBRATE in self.capabilities else []
            )
        self.vibrate_attributes = list(vibrate_attributes)

    @property
    def motor_count(self) -> int:
        return len(self.vibrate_attributes)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    async def vibrate(self, intensity: float) -> None:
        """Set every vibration motor to ``intensity``"""

    @abstractmethod
    async def scalar(self, motor_index: int, intensity: float) -> None:
        """Set a single vibration motor"""

    @abstractmethod
    async def oscillate(self, intensity: float) -> None:
        pass

    @abstractmethod
    async def linear(self, position: float, duration_ms: int) -> None:
        pass

    async def stop(self) -> None:
        if self.can(Capability.VIBRATE):
            await self.vibrate(0)
        if self.can(Capability.OSCILLATE):
            await self.oscillate(0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "display_name": self.display_name,
            "capabilities": sorted(c.value for c in self.capabilities),
            "motor_count": self.motor_count,
        }


DeviceListener = Callable[[Device], Any]


class DeviceClient(ABC):
    """Connection to the device-control server"""

    def __init__(self):
        self._added: List[DeviceListener] = []
        self._removed: List[DeviceListener] = []
        self.devices: List[Device] = []

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self) -> None:
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @abstractmethod
    async def stop_all(self) -> None:
        """Stop every device the server knows about"""

    def on_device_added(self, listener: DeviceListener) -> None:
        self._added.append(listener)

    def on_device_removed(self, listener: DeviceListener) -> None:
        self._removed.append(listener)

    def _notify(self, listeners: List[DeviceListener], device: Device) -> None:
        for listener in listeners:
            listener(device)


@dataclass
class LaunchResult:
    """Outcome of asking the launcher to start the device server"""

    success: bool
    pid: Optional[int] = None
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class ServerLauncher(ABC):
    """Starts the device-control server process"""

    @abstractmethod
    async def start(self) -> LaunchResult:
        pass
