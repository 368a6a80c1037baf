"""Relentless building patterns that push to a peak."""

import math

from ..base import Mode, Sequence, SequenceStep


def crescendo(phase, intensity):
    return min(phase ** 1.5, 1) * intensity


def tidal_wave(phase, intensity):
    wave = math.sin(phase * math.pi * 2)
    tide = math.sin(phase * math.pi * 0.5) * 0.7 + 0.3
    return abs(wave) * tide * intensity


def milking_pump(phase, intensity):
    pump = (phase * 4) % 1
    if pump < 0.7:
        return (pump / 0.7) ** 1.5 * intensity
    if pump < 0.85:
        return intensity
    return intensity * ((0.85 - pump) / 0.15)


def relentless(phase, intensity):
    cycle = phase * 2
    wave1 = math.sin(cycle * math.pi * 2.5)
    wave2 = math.sin(cycle * math.pi * 7)
    build = min(phase * 3, 1)
    return (abs(wave1) * 0.6 + abs(wave2) * 0.4) * build * intensity


def overload(phase, intensity):
    quadrant = math.floor(phase * 8)
    sub_phase = (phase * 8) % 1
    base = min((quadrant + 1) / 8, 1)
    return abs(math.sin(sub_phase * math.pi * 4)) * base * intensity


def forced_peak(phase, intensity):
    cycle = (phase * 3) % 1
    build = cycle * 0.6
    if cycle < 0.7:
        return (build / 0.6) ** 2 * intensity
    if cycle < 0.95:
        return intensity
    return intensity * (1 - (cycle - 0.95) / 0.05)


def spiral_up(phase, intensity):
    spiral = math.sin(phase * math.pi * (4 + phase * 6))
    return abs(spiral) * min(phase * 2, 1) * intensity


def tsunami(phase, intensity):
    cycle = (phase * 3) % 1
    if cycle < 0.7:
        peak = math.sqrt(cycle) * 0.8
    elif cycle < 0.85:
        peak = 1
    else:
        peak = 1 - (cycle - 0.85) / 0.15
    waves = math.sin(cycle * math.pi * 10) * 0.3 + 0.7
    return peak * waves * intensity


MODE = Mode(
    mode_id="milk_maid",
    name="Milk Maid",
    description="Building waves without relief",
    patterns={
        "crescendo": crescendo,
        "tidal_wave": tidal_wave,
        "milking_pump": milking_pump,
        "relentless": relentless,
        "overload": overload,
        "forced_peak": forced_peak,
        "spiral_up": spiral_up,
        "tsunami": tsunami,
    },
    sequences={
        "milking": Sequence(
            name="milking",
            description="Pump cycles escalating to overload",
            steps=[
                SequenceStep("milking_pump", 30, 70, 8000),
                SequenceStep("relentless", 40, 90, 10000),
                SequenceStep("overload", 50, 100, 6000, pause=2000),
            ],
        ),
    },
    intensity_multiplier=1.2,
)
