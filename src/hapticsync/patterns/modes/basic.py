"""Core waveforms available to every mode."""

import math
import random

from ..base import Mode, Sequence, SequenceStep


def sine(phase, intensity):
    return math.sin(phase * math.pi * 2) * intensity


def sawtooth(phase, intensity):
    return (phase * 2 if phase < 0.5 else (1 - phase) * 2) * intensity


def square(phase, intensity):
    return intensity if phase < 0.5 else 0


def triangle(phase, intensity):
    return (phase * 2 if phase < 0.5 else (1 - phase) * 2) * intensity


def pulse(phase, intensity):
    if phase < 0.1:
        return intensity
    if phase < 0.2:
        return intensity * 0.3
    return 0


def random_level(phase, intensity):
    """Uniform noise; not reproducible between calls."""
    return random.random() * intensity


def ramp_up(phase, intensity):
    return phase * intensity


def ramp_down(phase, intensity):
    return (1 - phase) * intensity


MODE = Mode(
    mode_id="basic",
    name="Basic",
    description="Core waveforms",
    patterns={
        "sine": sine,
        "sawtooth": sawtooth,
        "square": square,
        "triangle": triangle,
        "pulse": pulse,
        "random": random_level,
        "ramp_up": ramp_up,
        "ramp_down": ramp_down,
    },
    sequences={
        "warmup": Sequence(
            name="warmup",
            description="Slow sine swell into a steady ramp",
            steps=[
                SequenceStep("sine", 10, 40, 6000),
                SequenceStep("ramp_up", 30, 60, 6000, pause=1000),
            ],
            repeat=False,
        ),
    },
    default_enabled=True,
    toggleable=False,
)
