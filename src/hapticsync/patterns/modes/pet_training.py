"""Erratic reward-and-withhold patterns."""

import math
import random

from ..base import Mode


def rapid_micro(phase, intensity):
    if random.random() > 0.3:
        return intensity * (0.02 + random.random() * 0.08)
    return intensity * (0.2 + random.random() * 0.3)


def peak_and_drop(phase, intensity):
    cycle = (phase * 3) % 1
    return math.sin(cycle * math.pi * 1.25) * intensity * 0.95 if cycle < 0.8 else 0


def ghost_tease(phase, intensity):
    ghost = math.floor(phase * 15) % 4
    if ghost == 0:
        return intensity * (0.5 + random.random() * 0.3)
    if ghost == 2:
        return intensity * (0.02 + random.random() * 0.05)
    return 0


def erratic(phase, intensity):
    roll = random.random()
    if roll > 0.75:
        return intensity * 0.7
    if roll > 0.5:
        return intensity * 0.2
    if roll > 0.3:
        return intensity * 0.05
    return intensity * 0.01


MODE = Mode(
    mode_id="pet_training",
    name="Pet Training",
    description="Unpredictable rewards",
    patterns={
        "rapid_micro": rapid_micro,
        "peak_and_drop": peak_and_drop,
        "ghost_tease": ghost_tease,
        "erratic": erratic,
    },
)
