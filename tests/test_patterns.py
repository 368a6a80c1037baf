"""Tests for the mode registry, presets and custom mode loading."""

from pathlib import Path

import pytest
import yaml

from hapticsync.common.exceptions import ConfigurationError, PatternError, ValidationError
from hapticsync.patterns.base import Mode, Sequence, SequenceStep
from hapticsync.patterns.loader import build_custom_mode, load_custom_modes
from hapticsync.patterns.modes import basic
from hapticsync.patterns.presets import (
    DEFAULT_PRESET,
    DeviceType,
    PresetKind,
    device_shorthand,
    device_type,
    fallback_preset,
    find_preset,
)
from hapticsync.patterns.registry import ModeRegistry

CONFIG_DIR = Path(__file__).parent.parent / "config"


def flat(phase, intensity):
    return 0.5 * intensity


@pytest.fixture
def registry():
    """Registry with every built-in mode"""
    return ModeRegistry()


class TestGenerate:
    """Sampling patterns into integer intensities"""

    def test_ramp(self, registry):
        assert registry.generate("ramp_up", 4, 0, 100) == [0, 25, 50, 75]

    def test_square_within_bounds(self, registry):
        assert registry.generate("square", 4, 20, 80) == [80, 80, 20, 20]

    def test_negative_values_clamp_to_min(self, registry):
        """Sine dips below zero and is clamped to the requested minimum"""
        assert registry.generate("sine", 4, 0, 100) == [0, 100, 0, 0]

    def test_unknown_pattern_falls_back_to_sine(self, registry):
        assert registry.generate("no_such_pattern", 4, 0, 100) == registry.generate(
            "sine", 4, 0, 100
        )

    def test_zero_steps(self, registry):
        assert registry.generate("sine", 0, 0, 100) == []

    def test_reversed_bounds(self, registry):
        assert registry.generate("ramp_up", 4, 80, 20) == [80, 65, 50, 35]

    def test_dual_motor_phase_offset(self, registry):
        first, second = registry.generate_dual("square", 4, 0, 100)
        assert first == [100, 100, 0, 0]
        assert second == [0, 0, 100, 100]

    def test_values_stay_in_range(self, registry):
        for name in registry.pattern_names():
            values = registry.generate(name, 20, 10, 90)
            assert all(10 <= v <= 90 for v in values), name


class TestResolution:
    """Bare and namespaced pattern lookup"""

    def test_namespaced_lookup(self, registry):
        assert registry.resolve("basic:sine") is basic.sine
        assert registry.resolve("basic:missing") is None
        assert registry.resolve("nomode:sine") is None

    def test_first_registration_wins(self):
        custom = Mode("custom", "Custom", patterns={"sine": flat}, builtin=False)
        registry = ModeRegistry([basic.MODE, custom])
        assert registry.resolve("sine") is basic.sine
        assert registry.resolve("custom:sine") is flat

    def test_duplicate_mode_rejected(self, registry):
        assert not registry.register(basic.MODE)

    def test_unregister_resurfaces_shadowed_names(self):
        first = Mode("first", "First", patterns={"wobble": flat}, builtin=False)
        second = Mode("second", "Second", patterns={"wobble": basic.sine}, builtin=False)
        registry = ModeRegistry([basic.MODE, first, second])
        assert registry.resolve("wobble") is flat
        registry.unregister("first")
        assert registry.resolve("wobble") is basic.sine

    def test_builtin_cannot_be_unregistered(self, registry):
        with pytest.raises(PatternError):
            registry.unregister("basic")


class TestModeSettings:
    """Enabling modes and intensity multipliers"""

    def test_basic_always_enabled(self, registry):
        assert registry.get_settings("basic").enabled
        with pytest.raises(ValidationError):
            registry.update_settings("basic", enabled=False)

    def test_sequences_only_from_enabled_modes(self, registry):
        assert registry.get_sequence("denial_cycle") is None
        registry.update_settings("denial_domina", enabled=True)
        sequence = registry.get_sequence("denial_cycle")
        assert sequence is not None
        assert registry.mode_for_sequence("denial_cycle").mode_id == "denial_domina"

    def test_multiplier_bounds(self, registry):
        registry.update_settings("hypno", intensity_multiplier=2.5)
        assert registry.get_settings("hypno").intensity_multiplier == 2.5
        with pytest.raises(ValidationError):
            registry.update_settings("hypno", intensity_multiplier=4.5)
        assert registry.get_settings("hypno").intensity_multiplier == 2.5

    def test_unknown_mode(self, registry):
        with pytest.raises(PatternError):
            registry.update_settings("nope", enabled=True)

    def test_describe(self, registry):
        modes = {m["mode_id"]: m for m in registry.describe()}
        assert modes["basic"]["builtin"]
        assert not modes["basic"]["toggleable"]
        assert "sine" in modes["basic"]["patterns"]
        assert "warmup" in modes["basic"]["sequences"]


class TestSequenceModels:
    def test_step_validation(self):
        with pytest.raises(ValidationError):
            SequenceStep("sine", min=-1).validate()
        with pytest.raises(ValidationError):
            SequenceStep("sine", duration=0).validate()

    def test_from_dict(self):
        sequence = Sequence.from_dict(
            "swell",
            {"repeat": False, "steps": [{"pattern": "SINE", "min": 10, "max": 50}]},
        )
        assert not sequence.repeat
        assert sequence.steps[0].pattern == "sine"
        assert sequence.to_dict()["steps"][0]["max"] == 50

    def test_from_dict_requires_steps(self):
        with pytest.raises(ValidationError):
            Sequence.from_dict("empty", {"steps": []})


class TestPresets:
    """Device classification and preset tables"""

    @pytest.mark.parametrize(
        "name,kind",
        [
            ("Lovense Lush 3", DeviceType.VIBRATOR),
            ("Chastity Cage", DeviceType.CAGE),
            ("Lovense Hush Plug", DeviceType.PLUG),
            ("Kiiroo Launch", DeviceType.STROKER),
            ("Mystery Toy", DeviceType.GENERAL),
        ],
    )
    def test_device_type(self, name, kind):
        assert device_type(name) == kind

    def test_shorthand(self):
        assert device_shorthand("Lovense Hush") == "hush"
        assert device_shorthand("Acme Wand") == "acme"

    def test_find_preset(self):
        preset = find_preset(DeviceType.PLUG, "Pulse")
        assert preset.kind == PresetKind.WAVEFORM
        assert preset.pattern == "pulse"
        assert find_preset(DeviceType.PLUG, "edge") is None

    def test_fallback(self):
        assert fallback_preset(DeviceType.GENERAL).kind == PresetKind.GRADIENT
        assert fallback_preset(DeviceType.CAGE) == DEFAULT_PRESET


class TestCustomModes:
    """Custom modes from YAML files"""

    def test_build_custom_mode(self):
        mode = build_custom_mode(
            "mine",
            {
                "name": "Mine",
                "intensityMultiplier": 0.5,
                "ui": {"defaultEnabled": True},
                "patterns": {"Half": "intensity * 0.5", "broken": "import os"},
                "sequences": {
                    "loop": {"steps": [{"pattern": "half", "duration": 1000}]},
                    "bad": {"steps": []},
                },
            },
        )
        assert not mode.builtin
        assert mode.default_enabled
        assert mode.intensity_multiplier == 0.5
        assert set(mode.patterns) == {"half"}
        assert set(mode.sequences) == {"loop"}
        assert mode.patterns["half"](0.3, 1.0) == 0.5

    def test_load_from_yaml(self, tmp_path, registry):
        path = tmp_path / "modes.yaml"
        with open(path, "w") as f:
            yaml.dump(
                {
                    "pulsar": {"patterns": {"blink": "intensity if phase < 0.1 else 0"}},
                    "basic": {"patterns": {"other": "phase"}},
                    "broken": "not a mapping",
                },
                f,
            )
        loaded = load_custom_modes(registry, path)
        assert loaded == ["pulsar"]
        assert registry.has_pattern("blink")
        assert registry.get_mode("basic").builtin

    def test_shipped_example(self, registry):
        loaded = load_custom_modes(registry, CONFIG_DIR / "custom_modes.yaml")
        assert loaded == ["teasing"]
        assert registry.get_settings("teasing").enabled
        assert registry.get_sequence("tease_cycle") is not None

    def test_unreadable_file(self, tmp_path, registry):
        with pytest.raises(ConfigurationError):
            load_custom_modes(registry, tmp_path / "missing.yaml")
