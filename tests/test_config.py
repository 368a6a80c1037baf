"""Tests for configuration, session settings and the device registry."""

from pathlib import Path

import pytest

from hapticsync.common.exceptions import ConfigurationError, DeviceError, ValidationError
from hapticsync.core.config import SystemConfig, SystemDefaults

SHIPPED_CONFIG = Path(__file__).parent.parent / "config" / "hapticsync.yaml"


class TestSystemConfig:
    """Loading and validating configuration"""

    def test_defaults(self, system_config):
        assert system_config.sync.polling_interval_ms == SystemDefaults.DEFAULT_POLLING_INTERVAL_MS
        assert system_config.network.port == SystemDefaults.DEFAULT_PORT
        assert system_config.assets.media_dir is None

    def test_from_dict(self):
        config = SystemConfig.from_dict({"sync": {"global_intensity": 150}})
        assert config.sync.global_intensity == 150
        assert config.dispatch.system_cooldown_ms == SystemDefaults.SYSTEM_COMMAND_COOLDOWN_MS

    def test_empty_document(self):
        assert SystemConfig.from_dict(None).to_dict() == SystemConfig().to_dict()

    def test_unknown_section(self):
        with pytest.raises(ConfigurationError):
            SystemConfig.from_dict({"audio": {}})

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            SystemConfig.from_dict({"sync": {"polling": 50}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            SystemConfig.from_dict({"sync": [1, 2]})

    @pytest.mark.parametrize(
        "data",
        [
            {"network": {"port": 80}},
            {"network": {"heartbeat_interval_ms": 50}},
            {"sync": {"polling_interval_ms": 5}},
            {"sync": {"global_intensity": 500}},
            {"scheduler": {"heartbeat_threshold_ms": 1000, "heartbeat_check_ms": 3000}},
            {"dispatch": {"gradient_step_ms": 0}},
            {"assets": {"custom_modes_file": "modes.txt"}},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ValidationError):
            SystemConfig.from_dict(data)

    def test_from_yaml(self, config_file):
        config = SystemConfig.from_yaml(config_file)
        assert config.sync.polling_interval_ms == 100
        assert config.sync.loop_on_end is True
        assert config.network.port == 9000

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            SystemConfig.from_yaml(tmp_path / "missing.yaml")

    def test_shipped_config_loads(self):
        config = SystemConfig.from_yaml(SHIPPED_CONFIG)
        assert config.to_dict() == SystemConfig().to_dict()

    def test_update(self, system_config):
        system_config.update({"sync": {"sync_offset_ms": -200}})
        assert system_config.sync.sync_offset_ms == -200
        assert system_config.sync.polling_interval_ms == SystemDefaults.DEFAULT_POLLING_INTERVAL_MS

    def test_invalid_update(self, system_config):
        with pytest.raises(ValidationError):
            system_config.update({"network": {"port": 1}})


class TestSessionSettings:
    """Playback settings held by the session"""

    def test_scale(self, session):
        assert session.scale(80) == 80
        session.update_settings(global_intensity=50)
        assert session.scale(80) == 40
        assert session.scale(80, multiplier=0.5) == 20

    def test_scale_clamps(self, session):
        session.update_settings(global_intensity=400)
        assert session.scale(80) == 100

    def test_shape_inverts(self, session, device):
        session.devices.set_inverted(device.index, True)
        assert session.shape(device, 30) == 70

    def test_update_is_atomic(self, session):
        with pytest.raises(ValidationError):
            session.update_settings(global_intensity=50, polling_interval_ms=1)
        assert session.settings.global_intensity == 100

    def test_unknown_setting(self, session):
        with pytest.raises(ValidationError):
            session.update_settings(volume=3)

    def test_none_values_ignored(self, session):
        session.update_settings(global_intensity=None, loop_on_end=True)
        assert session.settings.global_intensity == 100
        assert session.settings.loop_on_end is True

    def test_describe(self, session):
        status = session.describe()
        assert status["connected"] is True
        assert status["settings"]["global_intensity"] == 100
        assert status["devices"][0]["name"] == "Lovense Lush"


class TestDeviceRegistry:
    """Connected devices and their local settings"""

    def test_follows_client_events(self, session, dual_device):
        session.client.add_device(dual_device)
        assert session.devices.names == ["Lovense Lush", "Lovense Edge"]
        session.client.remove_device(dual_device)
        assert session.devices.names == ["Lovense Lush"]

    def test_position_falls_back_to_first(self, session, device):
        assert session.device_at(5) is device

    def test_set_channel(self, session, device):
        assert session.devices.set_channel(device.index, "b") == "B"
        assert session.devices.channel(device) == "B"

    def test_invalid_channel(self, session, device):
        with pytest.raises(ValidationError):
            session.devices.set_channel(device.index, "Q")

    def test_unknown_device(self, session):
        with pytest.raises(DeviceError):
            session.devices.set_inverted(99, True)

    def test_settings_survive_reconnect(self, session, device):
        session.devices.set_channel(device.index, "A")
        session.client.remove_device(device)
        session.client.add_device(device)
        assert session.devices.channel(device) == "A"

    def test_describe(self, session, device):
        session.devices.set_inverted(device.index, True)
        entry = session.devices.describe()[0]
        assert entry["position"] == 0
        assert entry["channel"] == "-"
        assert entry["inverted"] is True
        assert entry["capabilities"] == ["vibrate"]
