import logging
from typing import Dict, List, Optional

from ..common.channels import DEFAULT_CHANNEL, normalize_channel
from ..common.exceptions import DeviceError
from ..patterns.presets import device_shorthand, device_type
from .base import Device, DeviceClient

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Ordered view of connected devices plus local per-device settings.

    Command targets address devices by their position in this list. Channel
    and inversion settings are keyed by the stable ``Device.index`` so they
    survive reordering.
    """

    def __init__(self):
        self._devices: List[Device] = []
        self._channels: Dict[int, str] = {}
        self._inverted: Dict[int, bool] = {}

    def attach(self, client: DeviceClient) -> None:
        """Seed from the client's current devices and follow its events"""
        for device in client.devices:
            self.add(device)
        client.on_device_added(self.add)
        client.on_device_removed(self.remove)

    def add(self, device: Device) -> None:
        if any(d.index == device.index for d in self._devices):
            return
        self._devices.append(device)
        self._channels.setdefault(device.index, DEFAULT_CHANNEL)
        logger.info(f"Device added: {device.display_name} (index {device.index})")

    def remove(self, device: Device) -> None:
        before = len(self._devices)
        self._devices = [d for d in self._devices if d.index != device.index]
        if len(self._devices) != before:
            logger.info(f"Device removed: {device.display_name} (index {device.index})")

    def clear(self) -> None:
        self._devices.clear()

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self):
        return iter(list(self._devices))

    @property
    def devices(self) -> List[Device]:
        return list(self._devices)

    @property
    def names(self) -> List[str]:
        return [d.display_name for d in self._devices]

    def at(self, position: int) -> Optional[Device]:
        """Device at a list position, falling back to the first device"""
        if 0 <= position < len(self._devices):
            return self._devices[position]
        return self._devices[0] if self._devices else None

    def position_of(self, device_index: int) -> int:
        for position, device in enumerate(self._devices):
            if device.index == device_index:
                return position
        raise DeviceError(f"No connected device with index {device_index}")

    def get(self, device_index: int) -> Device:
        return self._devices[self.position_of(device_index)]

    def channel(self, device: Device) -> str:
        return self._channels.get(device.index, DEFAULT_CHANNEL)

    def set_channel(self, device_index: int, channel: Optional[str]) -> str:
        device = self.get(device_index)
        normalized = normalize_channel(channel)
        self._channels[device.index] = normalized
        logger.info(f"{device.display_name} assigned to channel {normalized}")
        return normalized

    def is_inverted(self, device: Device) -> bool:
        return self._inverted.get(device.index, False)

    def set_inverted(self, device_index: int, inverted: bool) -> None:
        device = self.get(device_index)
        self._inverted[device.index] = bool(inverted)

    def describe(self) -> List[Dict]:
        return [
            {
                **device.to_dict(),
                "position": position,
                "type": device_type(device.display_name).value,
                "shorthand": device_shorthand(device.display_name),
                "channel": self.channel(device),
                "inverted": self.is_inverted(device),
            }
            for position, device in enumerate(self._devices)
        ]
