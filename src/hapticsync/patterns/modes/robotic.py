"""Stepped, mechanical patterns."""

import math

from ..base import Mode, Sequence, SequenceStep


def mechanical(phase, intensity):
    step = math.floor(phase * 16) / 16
    value = math.sin(step * math.pi * 2)
    return (value if value > 0 else value * 0.3) * intensity


def algorithm(phase, intensity):
    cycle = (phase * 4) % 1
    if cycle < 0.9:
        return (cycle / 0.9) ** 1.5 * intensity
    return intensity * ((1 - cycle) / 0.1)


def systematic_ruin(phase, intensity):
    cycle = (phase * 2.5) % 1
    build = min(cycle / 0.92, 1)
    return (0.08 if cycle >= 0.92 else build) ** 1.2 * intensity


def cold_calculation(phase, intensity):
    tick = math.floor(phase * 20)
    level = min(tick / 18, 1)
    drop = 0.05 if tick >= 19 else level
    return math.sin(tick * 0.5 * math.pi) * drop * intensity


MODE = Mode(
    mode_id="robotic",
    name="Robotic Ruination",
    description="Cold stepped machine rhythms",
    patterns={
        "mechanical": mechanical,
        "algorithm": algorithm,
        "systematic_ruin": systematic_ruin,
        "cold_calculation": cold_calculation,
    },
    sequences={
        "protocol": Sequence(
            name="protocol",
            description="Algorithmic build with a scheduled ruin",
            steps=[
                SequenceStep("mechanical", 20, 60, 8000),
                SequenceStep("algorithm", 30, 85, 8000),
                SequenceStep("systematic_ruin", 20, 90, 6000, pause=2000),
            ],
        ),
    },
)
