"""Stepped pattern playback on individual devices.

Every running pattern is one asyncio task per device position. A task issues
one device operation per step and sleeps for that step's interval, so
cancelling the task drops every pending continuation at once. Starting a
pattern returns as soon as its first step has been issued.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from ..devices.base import Capability, Device
from ..patterns.base import Sequence as ModeSequence
from ..patterns.presets import (
    DeviceType,
    Preset,
    PresetKind,
    device_type,
    fallback_preset,
    find_preset,
)
from .session import SessionContext

logger = logging.getLogger(__name__)

VIBRATE = "vibrate"
OSCILLATE = "oscillate"

SEQUENCE_STEP_GAP_MS = 100


@dataclass
class StepPlan:
    """Precomputed values for a stepped pattern.

    ``loop`` is the number of full passes; ``None`` repeats until stopped.
    ``motor2`` carries per-step values for a second motor when present.
    """

    values: List[int]
    intervals: List[int]
    loop: Optional[int] = 1
    action: str = VIBRATE
    motor2: Optional[List[int]] = None


class PatternHandle:
    """A running pattern on one device"""

    def __init__(self, name: str, position: int):
        self.name = name
        self.position = position
        self.steps = 0
        self.task: Optional[asyncio.Task] = None
        self.started = asyncio.Event()

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()

    async def wait(self) -> None:
        """Wait for the pattern to finish or be cancelled"""
        if self.task is None:
            return
        try:
            await self.task
        except asyncio.CancelledError:
            pass


class PatternPlayer:
    def __init__(
        self,
        session: SessionContext,
        sleep: Optional[Callable[[float], Awaitable]] = None,
    ):
        self.session = session
        self._sleep = sleep or asyncio.sleep
        self._active: Dict[int, PatternHandle] = {}

    @property
    def _step_ms(self) -> int:
        return self.session.config.dispatch.pattern_step_ms

    @property
    def _gradient_step_ms(self) -> int:
        return self.session.config.dispatch.gradient_step_ms

    def active(self, position: int) -> Optional[PatternHandle]:
        handle = self._active.get(position)
        return handle if handle and handle.running else None

    def active_patterns(self) -> Dict[int, str]:
        return {p: h.name for p, h in self._active.items() if h.running}

    async def _launch(self, position: int, name: str, body) -> PatternHandle:
        self.cancel(position)
        handle = PatternHandle(name, position)
        self._active[position] = handle
        handle.task = asyncio.create_task(body(handle), name=f"pattern-{position}-{name}")
        handle.task.add_done_callback(lambda _: self._finished(handle))
        await handle.started.wait()
        return handle

    def _finished(self, handle: PatternHandle) -> None:
        handle.started.set()
        if self._active.get(handle.position) is handle:
            del self._active[handle.position]

    def cancel(self, position: int) -> None:
        handle = self._active.pop(position, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for handle in list(self._active.values()):
            handle.cancel()
        self._active.clear()

    async def silence(self, device: Device) -> None:
        """Zero a device's outputs, tolerating unsupported operations"""
        try:
            await device.vibrate(0)
        except Exception as e:
            logger.debug(f"{device.display_name}: vibrate(0) failed ({e}), using per-motor stop")
            for motor in device.vibrate_attributes:
                try:
                    await device.scalar(motor.index, 0)
                except Exception as motor_error:
                    logger.debug(
                        f"{device.display_name}: motor {motor.index} stop failed: {motor_error}"
                    )
        if device.can(Capability.OSCILLATE):
            try:
                await device.oscillate(0)
            except Exception as e:
                logger.debug(f"{device.display_name}: oscillate(0) failed: {e}")

    async def stop_device(self, position: int) -> None:
        """Cancel the device's pattern and zero its outputs"""
        self.cancel(position)
        device = self.session.device_at(position)
        if device is not None:
            await self.silence(device)

    async def stop_all(self) -> int:
        """Cancel every pattern and zero every device; returns devices stopped"""
        self.cancel_all()
        stopped = 0
        for device in self.session.devices:
            try:
                await self.silence(device)
                stopped += 1
            except Exception as e:
                logger.error(f"Failed to stop {device.display_name}: {e}")
        logger.info(f"Stopped {stopped} device(s)")
        return stopped

    # Stepped patterns

    async def play(self, position: int, plan: StepPlan, name: str = "pattern") -> PatternHandle:
        """Run a precomputed step plan"""

        async def body(handle: PatternHandle) -> None:
            await self._run_plan(handle, plan)

        return await self._launch(position, name, body)

    async def _run_plan(self, handle: PatternHandle, plan: StepPlan) -> None:
        if not plan.values:
            return
        intervals = plan.intervals or [1000]
        passes = 1 if plan.loop is None else max(plan.loop, 1)
        index = 0
        completed = 0

        while True:
            if not self.session.connected:
                logger.info(f"Pattern {handle.name} halted: client disconnected")
                return
            device = self.session.device_at(handle.position)
            if device is None:
                return

            value = plan.values[index % len(plan.values)]
            interval = intervals[index % len(intervals)]
            await self._issue(device, plan, index, value)
            handle.steps += 1
            handle.started.set()

            index += 1
            if index >= len(plan.values):
                index = 0
                completed += 1
                if plan.loop is not None and completed >= passes:
                    return
            await self._sleep(interval / 1000)

    async def _issue(self, device: Device, plan: StepPlan, index: int, value: int) -> None:
        try:
            if plan.action == OSCILLATE:
                if device.can(Capability.OSCILLATE):
                    await device.oscillate(value / 100)
                return

            if not device.vibrate_attributes:
                return
            if plan.motor2 is not None and device.motor_count >= 2:
                await device.scalar(device.vibrate_attributes[0].index, value / 100)
                second = plan.motor2[index % len(plan.motor2)]
                await device.scalar(device.vibrate_attributes[1].index, second / 100)
            else:
                await device.vibrate(value / 100)
            logger.debug(f"{device.display_name}: step {index} -> {value}")
        except Exception as e:
            logger.error(f"{device.display_name}: pattern step failed: {e}")

    # Shaped patterns

    def waveform_plan(
        self,
        device: Device,
        pattern: str,
        low: int,
        high: int,
        duration: int,
        cycles: Optional[int],
        multiplier: float = 1.0,
    ) -> StepPlan:
        """Sample a waveform at the pattern step rate and shape it for ``device``"""
        steps = duration // self._step_ms
        modes = self.session.modes
        if device.motor_count >= 2:
            first, second = modes.generate_dual(pattern, steps, low, high)
            motor2 = [self.session.shape(device, v, multiplier) for v in second]
        else:
            first = modes.generate(pattern, steps, low, high)
            motor2 = None
        return StepPlan(
            values=[self.session.shape(device, v, multiplier) for v in first],
            intervals=[self._step_ms] * max(steps, 1),
            loop=cycles or 1,
            motor2=motor2,
        )

    def gradient_plan(
        self,
        device: Device,
        start: int,
        end: int,
        duration: int,
        hold: int = 0,
        release: int = 0,
    ) -> StepPlan:
        """Ramp, optional hold and optional release; motor 2 mirrors the ramp"""
        ramp_ms = self._gradient_step_ms
        first: List[int] = []
        second: List[int] = []
        intervals: List[int] = []

        steps = duration // ramp_ms
        for i in range(steps):
            progress = i / steps
            first.append(_round(start + (end - start) * progress))
            second.append(_round(start + (end - start) * (1 - progress)))
            intervals.append(ramp_ms)

        for _ in range(hold // self._step_ms if hold > 0 else 0):
            first.append(end)
            second.append(end)
            intervals.append(self._step_ms)

        release_steps = release // ramp_ms if release > 0 else 0
        for i in range(release_steps):
            progress = i / release_steps
            first.append(_round(end - end * progress))
            second.append(_round(end * progress))
            intervals.append(ramp_ms)

        shaped = [self.session.shape(device, v) for v in first]
        motor2 = None
        if device.motor_count >= 2:
            motor2 = [self.session.shape(device, v) for v in second]
        return StepPlan(values=shaped, intervals=intervals, loop=1, motor2=motor2)

    async def play_waveform(
        self,
        position: int,
        pattern: str,
        low: int,
        high: int,
        duration: int,
        cycles: int,
        name: Optional[str] = None,
    ) -> Optional[PatternHandle]:
        device = self.session.device_at(position)
        if device is None:
            logger.warning("No device for waveform pattern")
            return None
        await self.stop_device(position)
        plan = self.waveform_plan(device, pattern, low, high, duration, cycles)
        logger.info(
            f"{device.display_name}: {name or pattern} waveform ({low}-{high}%) "
            f"[{self.session.settings.global_intensity}%]"
        )
        return await self.play(position, plan, name or f"waveform_{pattern}")

    async def play_gradient(
        self,
        position: int,
        start: int,
        end: int,
        duration: int,
        hold: int = 0,
        release: int = 0,
        name: str = "gradient",
    ) -> Optional[PatternHandle]:
        device = self.session.device_at(position)
        if device is None:
            logger.warning("No device for gradient pattern")
            return None
        await self.stop_device(position)
        plan = self.gradient_plan(device, start, end, duration, hold, release)
        logger.info(f"{device.display_name}: gradient {start}% -> {end}%")
        return await self.play(position, plan, name)

    # Position patterns

    async def play_linear_waveform(
        self,
        position: int,
        pattern: str,
        positions: Sequence[int],
        duration: int,
        cycles: int,
        name: Optional[str] = None,
    ) -> Optional[PatternHandle]:
        device = self._linear_device(position)
        if device is None:
            return None
        await self.stop_device(position)

        start = self.session.invert(device, positions[0])
        end = self.session.invert(device, positions[1])
        steps = max(duration // self._step_ms, 1)
        fn = self.session.modes.resolve(pattern)
        if fn is None:
            logger.warning(f"Pattern '{pattern}' not found, using sine")
            fn = self.session.modes.resolve("sine")

        async def body(handle: PatternHandle) -> None:
            for _ in range(max(cycles, 1)):
                for step in range(steps):
                    if not self.session.connected:
                        return
                    target = _position(start + (end - start) * fn(step / steps, 1))
                    await self._linear(device, target, self._step_ms)
                    handle.steps += 1
                    handle.started.set()
                    await self._sleep(self._step_ms / 1000)

        return await self._launch(position, name or f"linear_{pattern}", body)

    async def play_linear_gradient(
        self,
        position: int,
        positions: Sequence[int],
        duration: int,
        hold: int = 0,
        name: str = "linear_gradient",
    ) -> Optional[PatternHandle]:
        device = self._linear_device(position)
        if device is None:
            return None
        await self.stop_device(position)

        start = self.session.invert(device, positions[0])
        end = self.session.invert(device, positions[1])
        step_ms = self._gradient_step_ms
        steps = duration // step_ms

        async def body(handle: PatternHandle) -> None:
            for i in range(steps):
                if not self.session.connected:
                    return
                await self._linear(device, _position(start + (end - start) * i / steps), step_ms)
                handle.steps += 1
                handle.started.set()
                await self._sleep(step_ms / 1000)
            handle.started.set()
            if hold > 0 and self.session.connected:
                await self._sleep(hold / 1000)

        return await self._launch(position, name, body)

    def _linear_device(self, position: int) -> Optional[Device]:
        device = self.session.device_at(position)
        if device is None:
            logger.warning("No device for linear pattern")
            return None
        if not device.can(Capability.LINEAR):
            logger.info(f"{device.display_name} has no linear capability, skipping")
            return None
        return device

    async def _linear(self, device: Device, position: int, duration_ms: int) -> None:
        try:
            await device.linear(position / 100, duration_ms)
        except Exception as e:
            logger.error(f"{device.display_name}: linear step failed: {e}")

    # Presets and sequences

    async def play_preset(self, position: int, name: str) -> Optional[PatternHandle]:
        """Resolve a preset name for the device's type and play it.

        Names missing from the device table fall back to an enabled mode's
        sequence of that name, then to the table's warmup, then to a sine.
        """
        device = self.session.device_at(position)
        if device is None:
            logger.warning("No device for preset")
            return None

        kind = device_type(device.display_name)
        table_kind = DeviceType.GENERAL if kind == DeviceType.VIBRATOR else kind
        preset = find_preset(table_kind, name)
        if preset is None:
            sequence = self.session.modes.get_sequence(name)
            if sequence is not None:
                return await self.play_sequence(position, sequence)
            logger.warning(f"Preset '{name}' not found for {kind.value}, using fallback")
            preset = fallback_preset(table_kind)
        return await self.play_preset_config(position, name, preset)

    async def play_preset_config(
        self, position: int, name: str, preset: Preset
    ) -> Optional[PatternHandle]:
        if preset.kind == PresetKind.WAVEFORM:
            return await self.play_waveform(
                position,
                preset.pattern,
                preset.min,
                preset.max,
                preset.duration,
                preset.cycles,
                name=name,
            )
        if preset.kind == PresetKind.GRADIENT:
            return await self.play_gradient(
                position,
                preset.start,
                preset.end,
                preset.duration,
                preset.hold,
                preset.release,
                name=name,
            )
        if preset.kind == PresetKind.LINEAR_WAVEFORM:
            return await self.play_linear_waveform(
                position,
                preset.pattern,
                preset.positions,
                preset.duration,
                preset.cycles,
                name=name,
            )
        return await self.play_linear_gradient(
            position, preset.positions, preset.duration, preset.hold, name=name
        )

    async def play_sequence(
        self, position: int, sequence: ModeSequence
    ) -> Optional[PatternHandle]:
        """Play a mode sequence step by step, scaled by the mode multiplier"""
        device = self.session.device_at(position)
        if device is None:
            logger.warning("No device for sequence")
            return None
        mode = self.session.modes.mode_for_sequence(sequence.name)
        multiplier = (
            self.session.modes.get_settings(mode.mode_id).intensity_multiplier
            if mode is not None
            else 1.0
        )
        await self.stop_device(position)
        logger.info(f"{device.display_name}: {sequence.name} sequence ({sequence.description})")

        async def body(handle: PatternHandle) -> None:
            index = 0
            while self.session.connected:
                step = sequence.steps[index]
                plan = self.waveform_plan(
                    device, step.pattern, step.min, step.max, step.duration, 1, multiplier
                )
                await self._run_plan(handle, plan)
                handle.started.set()
                if step.pause > 0:
                    await self._sleep(step.pause / 1000)

                index += 1
                if index >= len(sequence.steps):
                    if not sequence.repeat:
                        logger.info(f"{device.display_name}: {sequence.name} sequence complete")
                        return
                    index = 0
                await self._sleep(SEQUENCE_STEP_GAP_MS / 1000)

        return await self._launch(position, f"sequence_{sequence.name}", body)


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _position(value: float) -> int:
    """Stroke position, held to the 0..100 range a linear device accepts"""
    return max(0, min(100, _round(value)))
