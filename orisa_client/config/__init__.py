"""
Configuration module for the Orisa client.

Usage:
    from orisa_client.config import get_config

    config = get_config()
    logger.info("Channel configuration", url=config.channel.url)
"""

import sys
import threading
from os import getenv

from .models import AppConfig, ChannelConfig, LoggingConfig, build_socket_url

__all__ = ["get_config", "reset_config", "AppConfig", "ChannelConfig", "LoggingConfig", "build_socket_url"]

_config_instance: AppConfig | None = None
_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """
    Detect if running under pytest.

    Returns:
        bool: True if running in test mode, False otherwise
    """
    if "pytest" in sys.modules:
        return True
    return bool(getenv("PYTEST_CURRENT_TEST"))


def get_config() -> AppConfig:
    """
    Get client configuration (cached in normal runs, fresh in tests).

    Configuration is loaded from environment variables and .env file.

    Returns:
        AppConfig: The client configuration

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    global _config_instance
    if _is_test_mode():
        return AppConfig()

    with _config_lock:
        if _config_instance is None:
            _config_instance = AppConfig()
        return _config_instance


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None
