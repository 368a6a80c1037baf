"""Denial-focused patterns: teasing, edging and ruined builds."""

import math
import random

from ..base import Mode, Sequence, SequenceStep


def heartbeat(phase, intensity):
    cycle = phase * 2
    part1 = cycle % 1
    part2 = (cycle + 0.3) % 1
    first = intensity if part1 < 0.15 else intensity * 0.4 if part1 < 0.25 else 0
    second = intensity * 0.6 if part2 < 0.15 else intensity * 0.2 if part2 < 0.25 else 0
    return first + second


def tickle(phase, intensity):
    if random.random() > 0.5:
        return intensity * (0.3 + random.random() * 0.4)
    return intensity * (0.1 + random.random() * 0.15)


def edging(phase, intensity):
    edge_phase = (phase * 4) % 1
    ramp = math.sin(phase * math.pi * 1.5)
    return ramp * intensity * 0.8 if edge_phase < 0.9 else 0


def ruin(phase, intensity):
    if phase < 0.85:
        return math.sin(phase * math.pi * 0.85) * intensity
    return intensity * 0.2


def teasing(phase, intensity):
    wave = math.sin(phase * 3 * math.pi * 2)
    tease = wave * 0.1 if wave < 0 else wave * (0.3 + random.random() * 0.3)
    return abs(tease) * intensity


def desperation(phase, intensity):
    bursts = 1 if math.floor(phase * 8) % 3 == 0 else 0.1
    return phase * phase * bursts * intensity


def mercy(phase, intensity):
    cycle = phase * 5
    rest = 0 if cycle % 2 > 1 else 1
    return rest * math.sin(cycle * math.pi) * intensity * 0.6


def tease_escalate(phase, intensity):
    tease = 1 if (phase % 0.3) < 0.15 else 0.2
    return phase * tease * intensity


def stop_start(phase, intensity):
    return intensity * 0.7 if math.floor(phase * 10) % 2 == 0 else 0


def random_tease(phase, intensity):
    if random.random() > 0.6:
        return intensity * (0.2 + random.random() * 0.7)
    return 0


def micro_tease(phase, intensity):
    tick = math.floor(phase * 20) % 3
    if tick == 0:
        base = 0.05 + random.random() * 0.15
    elif tick == 1:
        base = 0.5 + random.random() * 0.2
    else:
        base = 0.1 + random.random() * 0.1
    return intensity * 0.7 if random.random() > 0.7 else intensity * base


def abrupt_edge(phase, intensity):
    build = phase % 0.4
    return math.sin(build * math.pi * 2.85) * intensity if build < 0.35 else 0


def build_and_ruin(phase, intensity):
    cycle = phase * 2
    if cycle % 1 > 0.9:
        return intensity * 0.1
    return math.sin(cycle * math.pi * 0.9) * intensity


def held_edge(phase, intensity):
    hold = (phase * 1.5) % 1
    if hold < 0.6:
        return math.sin(hold * math.pi * 1.66) * intensity
    if hold < 0.8:
        return intensity * 0.9
    return intensity * 0.05


def flutter(phase, intensity):
    level = intensity * 0.4 if math.floor(phase * 30) % 2 == 0 else intensity * 0.1
    return min(math.sqrt(phase) * level, intensity * 0.5)


MODE = Mode(
    mode_id="denial_domina",
    name="Denial Domina",
    description="Teasing and denial with frequent stops",
    patterns={
        "heartbeat": heartbeat,
        "tickle": tickle,
        "edging": edging,
        "ruin": ruin,
        "teasing": teasing,
        "desperation": desperation,
        "mercy": mercy,
        "tease_escalate": tease_escalate,
        "stop_start": stop_start,
        "random_tease": random_tease,
        "micro_tease": micro_tease,
        "abrupt_edge": abrupt_edge,
        "build_and_ruin": build_and_ruin,
        "held_edge": held_edge,
        "flutter": flutter,
    },
    sequences={
        "denial_cycle": Sequence(
            name="denial_cycle",
            description="Tease, edge, then cut off",
            steps=[
                SequenceStep("teasing", 10, 50, 8000),
                SequenceStep("edging", 20, 85, 10000),
                SequenceStep("stop_start", 0, 40, 4000, pause=3000),
            ],
        ),
        "ruin_sequence": Sequence(
            name="ruin_sequence",
            description="Long build that collapses before the peak",
            steps=[
                SequenceStep("tease_escalate", 10, 70, 10000),
                SequenceStep("build_and_ruin", 20, 95, 8000, pause=5000),
            ],
            repeat=False,
        ),
    },
)
