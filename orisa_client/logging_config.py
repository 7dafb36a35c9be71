"""
Structlog-based logging configuration for the Orisa client.

All modules log through get_logger() from this module so keyword context
(``logger.info("Message", generation=3)``) works everywhere. File output is
optional and goes to ``<log_base>/<environment>/client.log``.

USAGE:
    from ..logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Channel open", url=url, generation=generation)
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_log_base(log_base: str) -> Path:
    """
    Resolve log_base path to an absolute path relative to the project root.

    Args:
        log_base: Relative or absolute path to log directory

    Returns:
        Absolute path to log directory
    """
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    current_dir = Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        if (parent / "pyproject.toml").exists():
            return parent / log_path

    return current_dir / log_path


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        Environment name: "unit_test", the value of ORISA_ENV, or "local"
    """
    if "pytest" in sys.modules or "pytest" in sys.argv[0]:
        return "unit_test"

    env = os.getenv("ORISA_ENV")
    if env:
        return env

    return "local"


def _event_with_context_renderer(_logger: Any, _name: str, event_dict: dict[str, Any]) -> str:
    """
    Render the event string followed by its key=value context.

    Level, logger name and timestamp are left to the stdlib formatter.
    """
    event = event_dict.pop("event", None)
    for key in ("level", "logger", "timestamp"):
        event_dict.pop(key, None)
    text = "" if event is None else str(event)
    if event_dict:
        context = " ".join(f"{key}={value!r}" for key, value in sorted(event_dict.items()))
        text = f"{text} {context}" if text else context
    return text


def configure_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure Structlog based on environment.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _event_with_context_renderer,
    ]

    root_logger = logging.getLogger()
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    root_logger.setLevel(level)
    logging.getLogger("orisa_client").setLevel(level)

    if log_config and not log_config.get("disable_logging", False):
        _setup_file_logging(environment, log_config, log_level)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        # Later configuration must apply to loggers created at import time.
        cache_logger_on_first_use=False,
    )


def _setup_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> None:
    """Attach a rotating file handler for the client log."""
    from logging.handlers import RotatingFileHandler

    log_base = _resolve_log_base(log_config.get("log_base", "logs"))
    env_log_dir = log_base / environment
    env_log_dir.mkdir(parents=True, exist_ok=True)

    rotation_config = log_config.get("rotation", {})
    max_bytes = int(rotation_config.get("max_bytes", 10 * 1024 * 1024))
    backup_count = int(rotation_config.get("backup_count", 5))

    handler = RotatingFileHandler(
        env_log_dir / "client.log",
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    client_logger = logging.getLogger("orisa_client")
    for existing in list(client_logger.handlers):
        if isinstance(existing, RotatingFileHandler):
            client_logger.removeHandler(existing)
            existing.close()
    client_logger.addHandler(handler)
    client_logger.propagate = True


def get_logger(name: str) -> BoundLogger:
    """
    Get a Structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured Structlog logger instance
    """
    return structlog.get_logger(name)


def setup_logging(config: dict[str, Any]) -> None:
    """
    Set up logging from a configuration dictionary.

    Args:
        config: Configuration dictionary with an optional "logging" section
    """
    logging_config = config.get("logging", {})
    environment = logging_config.get("environment") or detect_environment()
    log_level = logging_config.get("level", "INFO")

    if logging_config.get("disable_logging", False):
        configure_structlog(environment, log_level, {"disable_logging": True})
        return

    configure_structlog(environment, log_level, logging_config)

    logger = get_logger("orisa_client.logging")
    logger.info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
    )


# Structlog is not configured at import time; applications call setup_logging()
# once their configuration is loaded.
