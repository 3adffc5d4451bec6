"""
Application Configuration

Manages configuration loading and persistence for the DoIP client.
Supports YAML or JSON configuration files and command-line overrides.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir

from doip_uds.core.app_logging import get_logger

logger = get_logger(__name__)

DEFAULT_DOIP_PORT = 13400
DEFAULT_RESPONSE_TIMEOUT = 5.0
DEFAULT_RETRY_COUNT = 3
DEFAULT_TESTER_ADDRESS = 0x0E80
DEFAULT_TARGET_ADDRESS = 0x0EE0


def _parse_address(value: Any, default: int) -> int:
    """Accept logical addresses written as ints or hex strings ("0x0E80")."""
    if value is None:
        return default
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


@dataclass
class ConnectionConfig:
    """Connection-related configuration."""

    server_address: str = "192.168.1.10"
    port: int = DEFAULT_DOIP_PORT
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    retry_count: int = DEFAULT_RETRY_COUNT
    source_address: int = DEFAULT_TESTER_ADDRESS
    target_address: int = DEFAULT_TARGET_ADDRESS
    strict_header: bool = False


@dataclass
class LoggingConfig:
    """Logging-related configuration."""

    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_raw_protocol: bool = False


@dataclass
class AppConfig:
    """Main application configuration."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "connection": {
                "server_address": self.connection.server_address,
                "port": self.connection.port,
                "response_timeout": self.connection.response_timeout,
                "retry_count": self.connection.retry_count,
                "source_address": f"0x{self.connection.source_address:04X}",
                "target_address": f"0x{self.connection.target_address:04X}",
                "strict_header": self.connection.strict_header,
            },
            "logging": {
                "log_level": self.logging.log_level,
                "log_dir": self.logging.log_dir,
                "log_raw_protocol": self.logging.log_raw_protocol,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """Create configuration from dictionary."""
        config = cls()

        if "connection" in data:
            conn = data["connection"] or {}
            config.connection = ConnectionConfig(
                server_address=conn.get("server_address", "192.168.1.10"),
                port=int(conn.get("port", DEFAULT_DOIP_PORT)),
                response_timeout=float(
                    conn.get("response_timeout", DEFAULT_RESPONSE_TIMEOUT)
                ),
                retry_count=int(conn.get("retry_count", DEFAULT_RETRY_COUNT)),
                source_address=_parse_address(
                    conn.get("source_address"), DEFAULT_TESTER_ADDRESS
                ),
                target_address=_parse_address(
                    conn.get("target_address"), DEFAULT_TARGET_ADDRESS
                ),
                strict_header=bool(conn.get("strict_header", False)),
            )

        if "logging" in data:
            log = data["logging"] or {}
            config.logging = LoggingConfig(
                log_level=log.get("log_level", "INFO"),
                log_dir=log.get("log_dir", "./logs"),
                log_raw_protocol=bool(log.get("log_raw_protocol", False)),
            )

        return config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    config_dir = Path(user_config_dir("doip_uds"))
    return config_dir / "config.yaml"


def load_config(path: Path | None = None) -> AppConfig:
    """
    Load configuration from file.

    Args:
        path: Path to configuration file (default: user config dir)

    Returns:
        Loaded configuration, or defaults if the file is missing or invalid
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.info(f"No configuration file found at {config_path}, using defaults")
        return AppConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        config = AppConfig.from_dict(data or {})
        logger.info(f"Configuration loaded from {config_path}")
        return config

    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration: {e}")
        return AppConfig()


def save_config(config: AppConfig, path: Path | None = None) -> bool:
    """
    Save configuration to file.

    Args:
        config: Configuration to save
        path: Path to save to (default: user config dir)

    Returns:
        True if saved successfully
    """
    config_path = path or get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")
        return False
