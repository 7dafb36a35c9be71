"""
Pydantic-based configuration models for the Orisa client.

Every setting can come from the environment (``ORISA_CHANNEL_*``,
``ORISA_LOGGING_*``) or an ``.env`` file, and is validated before any
connection is attempted.
"""

from typing import Any
from urllib.parse import urlsplit

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..logging_config import get_logger

logger = get_logger(__name__)

SOCKET_PATH = "/api/socket"


def build_socket_url(host: str, secure: bool = False, path: str = SOCKET_PATH) -> str:
    """
    Derive the websocket URL for a world server host.

    Mirrors the browser client, which picks ``wss`` when the page itself was
    served over https and always talks to ``/api/socket`` on the same host.

    Args:
        host: Host with optional port, e.g. "localhost:8080"
        secure: Whether the page/server is reached over TLS
        path: Socket path on the server

    Returns:
        Fully qualified websocket URL
    """
    scheme = "wss" if secure else "ws"
    return f"{scheme}://{host.rstrip('/')}{path}"


class ChannelConfig(BaseSettings):
    """Resilient channel configuration: endpoint, reconnect backoff and buffering."""

    url: str = Field(default=build_socket_url("localhost:8080"), description="World server websocket URL")
    min_delay: float = Field(default=2.0, description="Lower bound between reconnect attempts (seconds)")
    max_delay: float = Field(default=60.0, description="Upper bound between reconnect attempts (seconds)")
    backoff_multiplier: float = Field(default=2.0, description="Growth factor applied after each failed attempt")
    open_timeout: float = Field(default=10.0, description="Seconds allowed for the opening handshake")
    max_buffered_messages: int = Field(
        default=1000,
        description="Outbound messages kept while disconnected; 0 disables the bound",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the websocket URL scheme."""
        scheme = urlsplit(v).scheme
        if scheme not in ("ws", "wss"):
            logger.error("Invalid channel URL scheme", url=v, scheme=scheme)
            raise ValueError(f"Channel URL must use ws:// or wss://, got '{v}'")
        return v

    @field_validator("min_delay", "max_delay", "open_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("Durations must be greater than zero")
        return v

    @field_validator("backoff_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        """Validate backoff never shrinks."""
        if v < 1:
            raise ValueError("Backoff multiplier must be at least 1")
        return v

    @field_validator("max_buffered_messages")
    @classmethod
    def validate_buffer_bound(cls, v: int) -> int:
        """Validate the buffer bound is not negative."""
        if v < 0:
            raise ValueError("max_buffered_messages cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_delay_range(self) -> "ChannelConfig":
        """Validate the backoff floor does not exceed the ceiling."""
        if self.max_delay < self.min_delay:
            logger.error("Invalid backoff range", min_delay=self.min_delay, max_delay=self.max_delay)
            raise ValueError("max_delay must be greater than or equal to min_delay")
        return self

    model_config = {"env_prefix": "ORISA_CHANNEL_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str | None = Field(default=None, description="Logging environment (auto-detected when unset)")
    level: str = Field(default="INFO", description="Log level")
    log_base: str = Field(default="logs", description="Base log directory")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    def to_dict(self) -> dict[str, Any]:
        """Return the dictionary shape setup_logging() expects."""
        return {
            "environment": self.environment,
            "level": self.level,
            "log_base": self.log_base,
            "disable_logging": self.disable_logging,
        }

    model_config = {"env_prefix": "ORISA_LOGGING_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite client configuration.

    Access via get_config().
    """

    channel: ChannelConfig = Field(default_factory=ChannelConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict[str, Any]:
        """Dictionary form consumed by setup_logging()."""
        return {"logging": self.logging.to_dict()}
