"""
DoIP UDS Core Package

Contains configuration loading and structured logging.
"""

from doip_uds.core.app_logging import get_logger, setup_logging
from doip_uds.core.config import AppConfig, ConnectionConfig, load_config, save_config

__all__ = [
    "get_logger",
    "setup_logging",
    "AppConfig",
    "ConnectionConfig",
    "load_config",
    "save_config",
]
