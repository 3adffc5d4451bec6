"""
Tests for configuration loading and saving.
"""

import json
from pathlib import Path

import yaml

from doip_uds.core.config import AppConfig, ConnectionConfig, load_config, save_config


class TestAppConfig:
    """Tests for AppConfig defaults and conversion."""

    def test_defaults(self, app_config: AppConfig):
        """Test default connection parameters."""
        conn = app_config.connection

        assert conn.port == 13400
        assert conn.response_timeout == 5.0
        assert conn.retry_count == 3
        assert conn.source_address == 0x0E80
        assert conn.target_address == 0x0EE0
        assert conn.strict_header is False

    def test_to_dict_formats_addresses(self, app_config: AppConfig):
        """Test logical addresses are written as hex strings."""
        data = app_config.to_dict()

        assert data["connection"]["source_address"] == "0x0E80"
        assert data["connection"]["target_address"] == "0x0EE0"

    def test_from_dict_parses_addresses(self):
        """Test hex strings and ints are both accepted."""
        config = AppConfig.from_dict(
            {"connection": {"source_address": "0x0E81", "target_address": 0x1001}}
        )

        assert config.connection.source_address == 0x0E81
        assert config.connection.target_address == 0x1001

    def test_from_dict_partial(self):
        """Test missing sections keep their defaults."""
        config = AppConfig.from_dict({"logging": {"log_level": "DEBUG"}})

        assert config.logging.log_level == "DEBUG"
        assert config.connection == ConnectionConfig()


class TestConfigFiles:
    """Tests for reading and writing configuration files."""

    def test_save_and_load_yaml(self, temp_dir: Path):
        """Test a YAML round trip keeps every value."""
        config = AppConfig()
        config.connection.server_address = "10.0.0.2"
        config.connection.retry_count = 5
        config.connection.strict_header = True
        config.logging.log_raw_protocol = True
        path = temp_dir / "config.yaml"

        assert save_config(config, path)
        loaded = load_config(path)

        assert loaded == config
        assert yaml.safe_load(path.read_text())["connection"]["server_address"] == "10.0.0.2"

    def test_load_json(self, temp_dir: Path):
        """Test JSON configuration files are supported."""
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"connection": {"port": 13401, "response_timeout": 2}}))

        config = load_config(path)

        assert config.connection.port == 13401
        assert config.connection.response_timeout == 2.0

    def test_missing_file_uses_defaults(self, temp_dir: Path):
        """Test a missing file yields the defaults."""
        assert load_config(temp_dir / "absent.yaml") == AppConfig()

    def test_invalid_file_uses_defaults(self, temp_dir: Path):
        """Test an unparsable file yields the defaults."""
        path = temp_dir / "broken.yaml"
        path.write_text("connection: [unclosed\n")

        assert load_config(path) == AppConfig()

    def test_empty_file_uses_defaults(self, temp_dir: Path):
        """Test an empty YAML file yields the defaults."""
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert load_config(path) == AppConfig()
