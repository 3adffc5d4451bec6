"""
Structured Logging System

Provides JSONL structured logging for diagnostic sessions.
Connection events and diagnostic requests are logged with timestamps
and context; raw DoIP traffic goes to a separate logger that is only
enabled on request.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "doip_uds"
RAW_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.raw"

# Module-level logger cache
_loggers: dict[str, logging.Logger] = {}
_log_dir: Path | None = None
_session_id: str = datetime.now().strftime("%Y%m%d_%H%M%S")


class JSONLFormatter(logging.Formatter):
    """Formatter that outputs logs as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "session": _session_id,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in [
            "audit_event",
            "audit_details",
            "action",
            "target",
            "success",
            "error",
            "details",
        ]:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for human-readable output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        return f"{color}[{timestamp}] {record.levelname:8}{self.RESET} {record.name}: {record.getMessage()}"


def setup_logging(
    log_dir: Path | None = None,
    debug: bool = False,
    console: bool = True,
    level: str = "INFO",
    log_raw_protocol: bool = False,
) -> Path:
    """
    Initialize the logging system.

    Args:
        log_dir: Directory for log files (default: ./logs)
        debug: Force debug-level console logging
        console: Attach the colored console handler
        level: Console log level name (e.g. "INFO", "WARNING")
        log_raw_protocol: Log every sent and received frame as hex

    Returns:
        Path of the JSONL session log file
    """
    global _log_dir, _session_id

    _log_dir = log_dir or Path("./logs")
    _log_dir.mkdir(parents=True, exist_ok=True)

    _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # Raw frames are dropped at the source unless explicitly requested
    raw_logger = logging.getLogger(RAW_LOGGER_NAME)
    raw_logger.setLevel(logging.DEBUG if log_raw_protocol else logging.INFO)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG if debug else parse_level(level))
        console_handler.setFormatter(ConsoleFormatter())
        root_logger.addHandler(console_handler)

    log_file = _log_dir / f"session_{_session_id}.jsonl"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONLFormatter())
    root_logger.addHandler(file_handler)

    root_logger.info(
        f"Logging initialized: session={_session_id}, log_file={log_file}"
    )
    return log_file


def parse_level(name: str) -> int:
    """Map a level name to its logging constant, INFO if unknown."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger placed under the package namespace
    """
    if name not in _loggers:
        qualified = name
        if not qualified.startswith(ROOT_LOGGER_NAME):
            qualified = f"{ROOT_LOGGER_NAME}.{qualified}"
        _loggers[name] = logging.getLogger(qualified)

    return _loggers[name]


def get_raw_logger() -> logging.Logger:
    """Get the logger for hex dumps of sent and received frames."""
    return get_logger(RAW_LOGGER_NAME)


def get_session_id() -> str:
    """Get the current session ID."""
    return _session_id


def get_log_dir() -> Path:
    """Get the log directory."""
    return _log_dir or Path("./logs")


def log_audit_event(
    event_type: str,
    description: str,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Log an audit event (connection opened/closed and similar).

    Args:
        event_type: Type of event (e.g., "connect", "disconnect")
        description: Human-readable description
        details: Additional details
    """
    logger = get_logger("audit")
    logger.info(
        f"AUDIT: {event_type} - {description}",
        extra={
            "audit_event": event_type,
            "audit_details": details or {},
        },
    )


def log_diagnostic_action(
    action: str,
    target: str | None = None,
    success: bool = True,
    error: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Log a diagnostic action with structured data.

    Args:
        action: Action performed (e.g., "routing_activation", "ecu_reset")
        target: Logical address or endpoint the action was aimed at
        success: Whether the action succeeded
        error: Error message if failed
        details: Additional details
    """
    logger = get_logger("diagnostic")
    log_data = {
        "action": action,
        "target": target,
        "success": success,
        "error": error,
        "details": details or {},
    }

    if success:
        logger.info(f"Diagnostic action: {action}", extra=log_data)
    else:
        logger.error(f"Diagnostic action failed: {action} - {error}", extra=log_data)
