"""Low-intensity caretaker patterns for locked devices."""

import math
import random

from ..base import Mode, Sequence, SequenceStep


def gentle_checkup(phase, intensity):
    check = (phase * 8) % 1
    if check < 0.2:
        return intensity * 0.15
    if check < 0.4:
        return intensity * 0.08
    return intensity * 0.02


def caring_tap(phase, intensity):
    tap = math.floor(phase * 20)
    if tap % 5 == 0:
        return intensity * 0.25
    if tap % 3 == 0:
        return intensity * 0.1
    return intensity * 0.03


def tender_flutter(phase, intensity):
    wave = math.sin(phase * math.pi * 6) * 0.5 + 0.5
    caring = wave * 0.2 if wave < 0.6 else wave * 0.05
    return caring * intensity * 0.3


def nurturing_pulse(phase, intensity):
    cycle = (phase * 5) % 1
    if cycle < 0.5:
        return math.sin(cycle * math.pi * 2) * intensity * 0.25
    return intensity * 0.05


def cage_nurse(phase, intensity):
    nurse = math.floor(phase * 12)
    check_in = 0.2 if nurse % 4 == 0 else 0.05
    care = 0.15 if nurse % 3 == 0 else 0.03
    return max(check_in, care) * intensity * 0.3


def gentle_denial(phase, intensity):
    wave = math.sin(phase * math.pi * 1.5)
    return abs(wave * 0.2 if wave > 0 else 0) * intensity * 0.25


def tender_torment(phase, intensity):
    if random.random() > 0.85:
        torment = intensity * 0.3
    elif random.random() > 0.6:
        torment = intensity * 0.1
    else:
        torment = intensity * 0.02
    return torment * min(phase * 1.2, 1) * 0.4


def loving_check(phase, intensity):
    cycle = (phase * 10) % 1
    if cycle < 0.25:
        return intensity * 0.18
    if cycle < 0.4:
        return intensity * 0.06
    return intensity * 0.01


def caretaker_hums(phase, intensity):
    hum = math.sin(phase * math.pi * 3) * 0.4 + 0.5
    return hum ** 0.7 * 0.5 * intensity * 0.3


def sweet_frustration(phase, intensity):
    cycle = (phase * 6) % 1
    if cycle < 0.3:
        return intensity * 0.2
    if cycle < 0.6:
        return intensity * 0.05
    if cycle < 0.75:
        return intensity * 0.15
    return intensity * 0.02


_ROUTINE = (0.25, 0.05, 0.15, 0.03)


def daily_routine(phase, intensity):
    return intensity * _ROUTINE[math.floor(phase * 8) % 4]


MODE = Mode(
    mode_id="chastity",
    name="Chastity Caretaker",
    description="Soft check-ins that never build",
    patterns={
        "gentle_checkup": gentle_checkup,
        "caring_tap": caring_tap,
        "tender_flutter": tender_flutter,
        "nurturing_pulse": nurturing_pulse,
        "cage_nurse": cage_nurse,
        "gentle_denial": gentle_denial,
        "tender_torment": tender_torment,
        "loving_check": loving_check,
        "caretaker_hums": caretaker_hums,
        "sweet_frustration": sweet_frustration,
        "daily_routine": daily_routine,
    },
    sequences={
        "check_in": Sequence(
            name="check_in",
            description="Routine taps with long rests",
            steps=[
                SequenceStep("gentle_checkup", 0, 40, 6000, pause=4000),
                SequenceStep("caring_tap", 0, 50, 6000, pause=4000),
            ],
        ),
    },
)
