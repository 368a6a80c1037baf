"""High-intensity edging patterns."""

import math
import random

from ..base import Mode, Sequence, SequenceStep


def forbidden_peaks(phase, intensity):
    cycle = (phase * 2) % 1
    base = min(phase * 3, 1)
    if cycle < 0.6:
        rise = base * (cycle / 0.6) ** 1.5
    else:
        rise = base * (1 - (cycle - 0.6) / 0.4)
    return rise * (math.sin(phase * math.pi * 8) * 0.3 + 0.7) * intensity


def multiple_peaks(phase, intensity):
    count = math.floor(phase * 6)
    sub = (phase * 6) % 1
    base = min((count + 1) / 6, 1)
    peak = sub / 0.7 if sub < 0.7 else 1 - (sub - 0.7) / 0.3
    return base * peak * (math.sin(phase * math.pi * 12) * 0.2 + 0.8) * intensity


def intense_waves(phase, intensity):
    combined = (
        abs(math.sin(phase * math.pi * 3)) * 0.5
        + abs(math.sin(phase * math.pi * 7)) * 0.3
        + abs(math.sin(phase * math.pi * 12)) * 0.2
    )
    return combined * (min(phase * 2, 1) * 0.7 + 0.3) * intensity


def ripple_thruster(phase, intensity):
    cycle = (phase * 4) % 1
    ripple = math.sin((phase * 8) % 1 * math.pi * 4) * 0.5 + 0.5
    return (ripple if cycle < 0.8 else ripple * 0.3) * intensity


def rapid_fire(phase, intensity):
    cycle = (phase * 10) % 1
    burst = 1 if cycle < 0.15 else 0.2 if cycle < 0.3 else 0.05
    return burst * min(phase * 1.5, 1) * intensity


def evil_ripple(phase, intensity):
    size = math.sin(((phase * 12) % 1) * math.pi * 2) * 0.5 + 0.5
    return size ** 1.5 * intensity * 0.9


def cruel_sine(phase, intensity):
    value = abs(math.sin(phase * math.pi * 2))
    return value * math.sqrt(value) * intensity


def torture_pulse(phase, intensity):
    cycle = math.floor(phase * 15)
    in_pulse = (phase * 15) % 1 < 0.3
    level = random.random() * 0.3 + 0.7 if in_pulse else 0.05
    return level * (0.5 + (cycle / 15) * 0.5) * intensity


def wicked_build(phase, intensity):
    build = phase ** 0.8
    wickedness = math.sin(build * math.pi * 4) * 0.3 + 0.7
    spike = intensity * 0.3 if random.random() > 0.9 else 0
    return wickedness * intensity * build + spike


def malicious_flicker(phase, intensity):
    flicker = math.floor(phase * 40) % 3
    level = 1 if flicker == 0 else 0.3 if flicker == 1 else 0.05
    return level * min(phase * 2, 1) * intensity


def sadistic_hold(phase, intensity):
    cycle = (phase * 2.5) % 1
    if cycle < 0.5:
        return (cycle * 2) ** 0.8 * intensity
    if cycle < 0.7:
        return intensity * 0.95
    if cycle < 0.75:
        return intensity * 0.02
    return intensity * (cycle - 0.75) * 4 * 0.1


def torment_wave(phase, intensity):
    combined = (
        abs(math.sin(phase * math.pi * 6)) * 0.5
        + abs(math.sin(phase * math.pi * 13)) * 0.3
        + abs(math.sin(phase * math.pi * 19)) * 0.2
    )
    return combined ** 1.5 * intensity


def vindictive_spikes(phase, intensity):
    cycle = (phase * 8) % 1
    if cycle < 0.1:
        return intensity * (0.8 + random.random() * 0.2)
    if cycle < 0.3:
        return intensity * 0.5
    if cycle < 0.5:
        return intensity * 0.2
    return intensity * 0.02


MODE = Mode(
    mode_id="evil_edging_mistress",
    name="Evil Edging Mistress",
    description="Repeated peaks held at the edge",
    patterns={
        "forbidden_peaks": forbidden_peaks,
        "multiple_peaks": multiple_peaks,
        "intense_waves": intense_waves,
        "ripple_thruster": ripple_thruster,
        "rapid_fire": rapid_fire,
        "evil_ripple": evil_ripple,
        "cruel_sine": cruel_sine,
        "torture_pulse": torture_pulse,
        "wicked_build": wicked_build,
        "malicious_flicker": malicious_flicker,
        "sadistic_hold": sadistic_hold,
        "torment_wave": torment_wave,
        "vindictive_spikes": vindictive_spikes,
    },
    sequences={
        "edge_marathon": Sequence(
            name="edge_marathon",
            description="Peaks, a held edge, then spikes",
            steps=[
                SequenceStep("forbidden_peaks", 30, 90, 10000),
                SequenceStep("sadistic_hold", 20, 95, 8000, pause=3000),
                SequenceStep("vindictive_spikes", 10, 80, 6000),
            ],
        ),
    },
    intensity_multiplier=1.1,
)
