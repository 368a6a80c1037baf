import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..common.exceptions import PatternError, ValidationError
from .base import Mode, ModeSettings, PatternFn, Sequence
from .modes import BUILTIN_MODES

logger = logging.getLogger(__name__)

FALLBACK_PATTERN = "sine"
DUAL_MOTOR_PHASE_OFFSET = 0.5


class ModeRegistry:
    """Explicit registry of pattern modes.

    Patterns are stored per mode and addressed either as ``mode:name`` or as a
    bare name. Bare names resolve to the first registered mode defining them;
    later collisions are logged and stay reachable through the namespaced form.
    """

    def __init__(self, modes: Optional[Iterable[Mode]] = None):
        self._modes: Dict[str, Mode] = {}
        self._settings: Dict[str, ModeSettings] = {}
        self._index: Dict[str, Tuple[str, PatternFn]] = {}

        for mode in BUILTIN_MODES if modes is None else modes:
            self.register(mode)

    def register(self, mode: Mode) -> bool:
        """Register a mode, returning False if it was rejected"""
        if mode.mode_id in self._modes:
            logger.warning(
                f"Mode '{mode.mode_id}' is already registered, ignoring duplicate"
            )
            return False

        self._modes[mode.mode_id] = mode
        self._settings[mode.mode_id] = ModeSettings(
            enabled=mode.default_enabled or not mode.toggleable,
            intensity_multiplier=mode.intensity_multiplier,
        )

        for name, fn in mode.patterns.items():
            owner = self._index.get(name)
            if owner is not None:
                logger.warning(
                    f"Pattern '{name}' from mode '{mode.mode_id}' shadowed by "
                    f"mode '{owner[0]}'; use '{mode.mode_id}:{name}'"
                )
                continue
            self._index[name] = (mode.mode_id, fn)

        logger.info(
            f"Registered mode {mode.mode_id} with {len(mode.patterns)} patterns "
            f"and {len(mode.sequences)} sequences"
        )
        return True

    def unregister(self, mode_id: str) -> None:
        mode = self._modes.get(mode_id)
        if mode is None:
            raise PatternError(f"Unknown mode: {mode_id}")
        if mode.builtin:
            raise PatternError(f"Built-in mode '{mode_id}' cannot be removed")

        del self._modes[mode_id]
        del self._settings[mode_id]
        # Rebuild bare-name index so shadowed names from other modes resurface
        self._index.clear()
        for other in self._modes.values():
            for name, fn in other.patterns.items():
                self._index.setdefault(name, (other.mode_id, fn))

    @property
    def modes(self) -> List[Mode]:
        return list(self._modes.values())

    def get_mode(self, mode_id: str) -> Mode:
        try:
            return self._modes[mode_id]
        except KeyError:
            raise PatternError(f"Unknown mode: {mode_id}") from None

    def get_settings(self, mode_id: str) -> ModeSettings:
        self.get_mode(mode_id)
        return self._settings[mode_id]

    def update_settings(
        self,
        mode_id: str,
        enabled: Optional[bool] = None,
        intensity_multiplier: Optional[float] = None,
    ) -> ModeSettings:
        """Change a mode's enabled flag and/or intensity multiplier"""
        mode = self.get_mode(mode_id)
        settings = self._settings[mode_id]
        candidate = ModeSettings(
            enabled=settings.enabled if enabled is None else bool(enabled),
            intensity_multiplier=(
                settings.intensity_multiplier
                if intensity_multiplier is None
                else float(intensity_multiplier)
            ),
        )
        if not mode.toggleable and not candidate.enabled:
            raise ValidationError(f"Mode '{mode_id}' cannot be disabled")
        candidate.validate()
        self._settings[mode_id] = candidate
        logger.info(
            f"Mode {mode_id} settings: enabled={candidate.enabled}, "
            f"multiplier={candidate.intensity_multiplier}"
        )
        return candidate

    def enabled_modes(self) -> List[Mode]:
        return [m for m in self._modes.values() if self._settings[m.mode_id].enabled]

    def resolve(self, name: str) -> Optional[PatternFn]:
        """Find a pattern by bare or ``mode:name`` reference"""
        key = name.strip().lower()
        if ":" in key:
            mode_id, _, pattern_name = key.partition(":")
            mode = self._modes.get(mode_id)
            if mode is None:
                return None
            return mode.patterns.get(pattern_name)
        entry = self._index.get(key)
        return entry[1] if entry else None

    def has_pattern(self, name: str) -> bool:
        return self.resolve(name) is not None

    def pattern_names(self) -> List[str]:
        return list(self._index)

    def resolve_or_fallback(self, name: str) -> PatternFn:
        fn = self.resolve(name)
        if fn is None:
            logger.warning(f"Pattern '{name}' not found, using {FALLBACK_PATTERN}")
            fn = self._index[FALLBACK_PATTERN][1]
        return fn

    def generate(
        self, pattern_name: str, steps: int, min_value: float, max_value: float
    ) -> List[int]:
        """Sample a pattern into ``steps`` integer intensities.

        Values are ``min + pattern(i / steps, 1) * (max - min)`` rounded half
        up and clamped to the requested range within 0-100. Unknown names fall
        back to sine.
        """
        return self._sample(pattern_name, steps, min_value, max_value, 0.0)

    def generate_dual(
        self, pattern_name: str, steps: int, min_value: float, max_value: float
    ) -> Tuple[List[int], List[int]]:
        """Sample a pattern for two motors, the second offset by half a period"""
        return (
            self._sample(pattern_name, steps, min_value, max_value, 0.0),
            self._sample(
                pattern_name, steps, min_value, max_value, DUAL_MOTOR_PHASE_OFFSET
            ),
        )

    def _sample(
        self,
        pattern_name: str,
        steps: int,
        min_value: float,
        max_value: float,
        offset: float,
    ) -> List[int]:
        if steps <= 0:
            return []
        fn = self.resolve_or_fallback(pattern_name)

        phases = (np.arange(steps) / steps + offset) % 1.0
        raw = np.array([_safe_call(fn, float(p)) for p in phases])
        values = min_value + raw * (max_value - min_value)

        low = max(0.0, min(min_value, max_value))
        high = min(100.0, max(min_value, max_value))
        values = np.floor(np.clip(values, low, high) + 0.5)
        return [int(v) for v in values]

    def get_sequence(self, name: str) -> Optional[Sequence]:
        """Find a sequence in the enabled modes"""
        key = name.strip().lower()
        for mode in self.enabled_modes():
            if key in mode.sequences:
                return mode.sequences[key]
        return None

    def enabled_sequences(self) -> Dict[str, Sequence]:
        result: Dict[str, Sequence] = {}
        for mode in self.enabled_modes():
            for name, sequence in mode.sequences.items():
                result.setdefault(name, sequence)
        return result

    def mode_for_sequence(self, name: str) -> Optional[Mode]:
        key = name.strip().lower()
        for mode in self.enabled_modes():
            if key in mode.sequences:
                return mode
        return None

    def describe(self) -> List[Dict[str, Any]]:
        """Summaries of all modes for listings"""
        return [
            {
                "mode_id": mode.mode_id,
                "name": mode.name,
                "description": mode.description,
                "builtin": mode.builtin,
                "toggleable": mode.toggleable,
                "enabled": self._settings[mode.mode_id].enabled,
                "intensity_multiplier": self._settings[mode.mode_id].intensity_multiplier,
                "patterns": sorted(mode.patterns),
                "sequences": sorted(mode.sequences),
            }
            for mode in self._modes.values()
        ]


def _safe_call(fn: PatternFn, phase: float) -> float:
    value = fn(phase, 1.0)
    if value is None or not math.isfinite(value):
        return 0.0
    return float(value)
