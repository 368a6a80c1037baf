from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from ..common.exceptions import ValidationError

PatternFn = Callable[[float, float], float]


@dataclass
class SequenceStep:
    """One waveform segment of a sequence"""

    pattern: str
    min: int = 20
    max: int = 60
    duration: int = 3000
    pause: int = 0

    def validate(self) -> None:
        """Validate step bounds"""
        if not 0 <= self.min <= 100 or not 0 <= self.max <= 100:
            raise ValidationError(
                f"Sequence step '{self.pattern}' bounds must be within 0-100"
            )
        if self.duration <= 0:
            raise ValidationError(
                f"Sequence step '{self.pattern}' duration must be positive"
            )
        if self.pause < 0:
            raise ValidationError(
                f"Sequence step '{self.pattern}' pause must not be negative"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SequenceStep":
        """Create a step from a plain mapping"""
        if "pattern" not in data:
            raise ValidationError("Sequence step requires a pattern name")
        step = cls(
            pattern=str(data["pattern"]).lower(),
            min=int(data.get("min", 20)),
            max=int(data.get("max", 60)),
            duration=int(data.get("duration", 3000)),
            pause=int(data.get("pause", 0)),
        )
        step.validate()
        return step


@dataclass
class Sequence:
    """A named, pre-authored multi-step routine"""

    name: str
    steps: List[SequenceStep]
    repeat: bool = True
    description: str = ""

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "Sequence":
        """Create a sequence from a plain mapping"""
        raw_steps = data.get("steps") or data.get("sequence") or []
        if not isinstance(raw_steps, list) or not raw_steps:
            raise ValidationError(f"Sequence '{name}' must have at least one step")
        return cls(
            name=name,
            steps=[SequenceStep.from_dict(step) for step in raw_steps],
            repeat=data.get("repeat", True) is not False,
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "repeat": self.repeat,
            "steps": [
                {
                    "pattern": s.pattern,
                    "min": s.min,
                    "max": s.max,
                    "duration": s.duration,
                    "pause": s.pause,
                }
                for s in self.steps
            ],
        }


@dataclass
class Mode:
    """A named bundle of patterns and sequences"""

    mode_id: str
    name: str
    description: str = ""
    patterns: Dict[str, PatternFn] = field(default_factory=dict)
    sequences: Dict[str, Sequence] = field(default_factory=dict)
    default_enabled: bool = False
    intensity_multiplier: float = 1.0
    toggleable: bool = True
    builtin: bool = True


@dataclass
class ModeSettings:
    """User-adjustable state of a loaded mode"""

    enabled: bool = False
    intensity_multiplier: float = 1.0

    def validate(self) -> None:
        if not 0.0 <= self.intensity_multiplier <= 4.0:
            raise ValidationError("Intensity multiplier must be between 0 and 4")
