"""Routing of funscript actions to channel-assigned devices."""

import asyncio
import logging
import math
from typing import Awaitable, Dict, List, Optional, Sequence

from ..common.channels import DEFAULT_CHANNEL
from ..core.config import SystemDefaults
from ..core.session import SessionContext
from ..devices.base import Capability, Device
from .funscript import Funscript, FunscriptAction

logger = logging.getLogger(__name__)


def rescale(raw: float, global_intensity: float) -> int:
    """Scale a position's deviation from neutral by the global intensity.

    ``50 + (raw - 50) * intensity / 100``, rounded and clamped to 0-100, so
    100 at 50% intensity becomes 75 and 0 at 200% clips to 0.
    """
    neutral = SystemDefaults.NEUTRAL_POSITION
    scaled = neutral + (raw - neutral) * (global_intensity / 100)
    return int(max(0, min(100, math.floor(scaled + 0.5))))


def devices_for_channel(
    session: SessionContext,
    channel: str,
    primary: Optional[str],
    loaded: Sequence[str],
) -> List[Device]:
    """Devices that should receive actions from ``channel``'s timeline.

    Unassigned devices follow the primary timeline. A device assigned to a
    channel without a loaded funscript receives nothing.
    """
    targets = []
    for device in session.devices:
        assigned = session.devices.channel(device)
        if assigned == DEFAULT_CHANNEL:
            if channel == primary:
                targets.append(device)
        elif assigned not in loaded:
            logger.debug(f"Skipping {device.display_name}: no funscript for channel {assigned}")
        elif assigned == channel:
            targets.append(device)
    return targets


class ActionRouter:
    """Turns one funscript action into concurrent device operations"""

    def __init__(self, session: SessionContext):
        self.session = session

    def _adjust(self, device: Device, raw: float, funscript: Funscript) -> int:
        value = rescale(raw, self.session.settings.global_intensity)
        # funscript and device inversion cancel each other out
        if funscript.inverted != self.session.devices.is_inverted(device):
            value = 100 - value
        return value

    def operations(
        self, device: Device, action: FunscriptAction, funscript: Funscript
    ) -> List[Awaitable]:
        positions = action.positions
        if device.can(Capability.LINEAR):
            position = self._adjust(device, positions[0], funscript)
            return [
                device.linear(position / 100, SystemDefaults.LINEAR_ACTION_DURATION_MS)
            ]

        motors = device.vibrate_attributes
        if not motors:
            logger.debug(f"{device.display_name} has no vibration motors, skipping")
            return []
        if len(positions) == 1:
            positions = positions * len(motors)
        return [
            device.scalar(motor.index, self._adjust(device, raw, funscript) / 100)
            for motor, raw in zip(motors, positions)
        ]

    async def execute(
        self, action: FunscriptAction, funscript: Funscript, devices: Sequence[Device]
    ) -> int:
        """Issue the action to every device and wait for all of them to settle.

        Returns the number of operations that failed. A failing device never
        prevents the others from receiving the action.
        """
        if not self.session.connected or not devices:
            return 0

        labels: List[str] = []
        pending: List[Awaitable] = []
        for device in devices:
            ops = self.operations(device, action, funscript)
            labels.extend([device.display_name] * len(ops))
            pending.extend(ops)

        logger.debug(f"Action at {action.at}ms pos={action.pos} -> {len(pending)} operations")
        results = await asyncio.gather(*pending, return_exceptions=True)

        failures = 0
        for label, result in zip(labels, results):
            if isinstance(result, Exception):
                failures += 1
                logger.error(f"Funscript action failed on {label}: {result}")
        return failures


def channel_targets(
    session: SessionContext, funscripts: Dict[str, Funscript], primary: Optional[str]
) -> Dict[str, List[Device]]:
    """Device targets for every loaded channel"""
    loaded = list(funscripts)
    return {
        channel: devices_for_channel(session, channel, primary, loaded)
        for channel in funscripts
    }
