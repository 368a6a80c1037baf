"""Barely-there patterns."""

import math
import random

from ..base import Mode


def fairy_dust(phase, intensity):
    dust = math.floor(phase * 50)
    level = 1 if dust % 7 == 0 else 0.3 if dust % 3 == 0 else 0.05
    return level * intensity * 0.2


def impish_flutter(phase, intensity):
    wave = math.sin(((phase * 30) % 1) * math.pi * 4)
    whisper = wave * 0.15 if wave > 0.7 else wave * 0.02
    return abs(whisper) * intensity * 0.25


def maddening_tickle(phase, intensity):
    tickle = math.floor(phase * 40)
    if tickle % 5 == 0:
        return intensity * (0.1 + random.random() * 0.15)
    if tickle % 2 == 0:
        return intensity * 0.03
    return intensity * 0.01


def phantom_touch(phase, intensity):
    ghost = math.floor(phase * 25)
    if ghost % 8 == 0:
        return intensity * 0.25
    if ghost % 3 == 0:
        return intensity * (0.02 + random.random() * 0.03)
    return intensity * 0.005


def frustrating_flutter(phase, intensity):
    cycle = (phase * 40) % 1
    level = 0.3 if cycle < 0.15 else 0.1 if cycle < 0.3 else 0.02
    return level * (math.sin(phase * math.pi * 8) * 0.3 + 0.7) * intensity * 0.2


def unbearable_lightness(phase, intensity):
    cycle = (phase * 60) % 1
    level = 0.2 if cycle < 0.1 else 0.05 if cycle < 0.15 else 0.01
    return level * min(phase * 1.5, 1) * intensity * 0.3


def teasing_whisper(phase, intensity):
    wave = math.sin(phase * math.pi * 12)
    whisper = (wave - 0.8) * 5 if wave > 0.8 else 0
    return whisper * intensity * 0.15


def maddening_ripples(phase, intensity):
    ripple = math.sin(((phase * 20) % 1) * math.pi * 6) * 0.5 + 0.5
    tease = ripple * 0.2 if ripple < 0.5 else ripple * 0.05
    return tease * intensity * 0.25


def infuriating_flicker(phase, intensity):
    flicker = math.floor(phase * 80)
    level = 0.3 if flicker % 4 == 0 else 0.08 if flicker % 2 == 0 else 0.01
    return level * min(phase * 2, 1) * intensity * 0.3


MODE = Mode(
    mode_id="frustration",
    name="Frustration Fairy",
    description="Feather-light teasing",
    patterns={
        "fairy_dust": fairy_dust,
        "impish_flutter": impish_flutter,
        "maddening_tickle": maddening_tickle,
        "phantom_touch": phantom_touch,
        "frustrating_flutter": frustrating_flutter,
        "unbearable_lightness": unbearable_lightness,
        "teasing_whisper": teasing_whisper,
        "maddening_ripples": maddening_ripples,
        "infuriating_flicker": infuriating_flicker,
    },
)
