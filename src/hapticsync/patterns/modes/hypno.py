"""Slow, rolling patterns for trance-style play."""

import math

from ..base import Mode, Sequence, SequenceStep


def hypno_wave(phase, intensity):
    wave1 = math.sin(phase * math.pi * 0.8)
    wave2 = math.sin(phase * math.pi * 1.6)
    wave3 = math.sin(phase * math.pi * 2.4)
    return ((wave1 * 0.5 + wave2 * 0.3 + wave3 * 0.2) * 0.5 + 0.5) * intensity * 0.85


def trance_rhythm(phase, intensity):
    cycle = math.sin(phase * math.pi)
    return ((cycle + 1) / 2) ** 0.7 * intensity * 0.8


def sleepy_spiral(phase, intensity):
    spiral = math.sin(phase * 3 * math.pi * 2)
    return (abs(spiral) * 0.7 + 0.15) * intensity * 0.75


def hypnotic_pulse(phase, intensity):
    pulse = (phase * 4) % 1
    if pulse < 0.6:
        return math.sin(pulse / 0.6 * math.pi * 0.5) * intensity * 0.75
    return math.sin((pulse - 0.6) / 0.4 * math.pi) * intensity * 0.4 + intensity * 0.3


def dreamy_flow(phase, intensity):
    flow = math.sin(phase * math.pi * 1.5)
    return ((flow + 1) / 2) ** 0.6 * intensity * 0.8


def entrancement_zone(phase, intensity):
    zone = math.sin(phase * math.pi * 2) * 0.4 + 0.5
    return min(zone, 0.85) * intensity * 0.75


def sleepy_build(phase, intensity):
    build = math.sqrt(phase)
    return (math.sin(build * math.pi * 1.5) * 0.4 + 0.4) * intensity * 0.7


def trance_oscillation(phase, intensity):
    wave = math.sin(phase * math.pi * 1.2)
    return min((wave + 1) / 2, 0.85) * intensity * 0.8


def hypnotic_drift(phase, intensity):
    drift = math.sin(phase * math.pi * 0.6) * 0.5 + 0.5
    return drift ** 0.8 * 0.9 * intensity * 0.75


def edge_trance(phase, intensity):
    stage = math.floor(phase * 3)
    progress = (phase * 3) % 1
    base = math.sin(progress * math.pi * 2) * 0.4 + 0.45
    stage_mod = 0.6 + (stage / 10) * 0.25
    return min(base * stage_mod, 0.85) * intensity * 0.75


MODE = Mode(
    mode_id="hypno",
    name="Hypno Helper",
    description="Gentle rolling waves",
    patterns={
        "hypno_wave": hypno_wave,
        "trance_rhythm": trance_rhythm,
        "sleepy_spiral": sleepy_spiral,
        "hypnotic_pulse": hypnotic_pulse,
        "dreamy_flow": dreamy_flow,
        "entrancement_zone": entrancement_zone,
        "sleepy_build": sleepy_build,
        "trance_oscillation": trance_oscillation,
        "hypnotic_drift": hypnotic_drift,
        "edge_trance": edge_trance,
    },
    sequences={
        "deep_trance": Sequence(
            name="deep_trance",
            description="Drift into a slow pulse",
            steps=[
                SequenceStep("hypnotic_drift", 10, 50, 12000),
                SequenceStep("trance_rhythm", 20, 60, 12000),
                SequenceStep("hypnotic_pulse", 20, 70, 8000),
            ],
        ),
    },
    intensity_multiplier=0.8,
)
