"""
Configuration management for RSK Transaction Helper

Node settings come from an explicit RskConfig or from environment variables
and a .env file. Includes logging configuration with file output.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from dotenv import load_dotenv

from .errors import ConfigurationError


DEFAULT_HOST_URL = "http://localhost:4444"
DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_ATTEMPT_DELAY_MS = 1000
DEFAULT_REQUEST_TIMEOUT = 30.0


def _load_env_file():
    """Load .env file from project root"""
    current = Path(__file__).parent.parent  # rsk_transaction_helper package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Get environment variable with default"""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid float value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as int"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid int value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as bool"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def normalize_host_url(host_url: str) -> str:
    """Prepend http:// when the URL carries no scheme"""
    if "://" in host_url:
        return host_url
    return f"http://{host_url}"


def _normalize_chain_id(chain_id: Union[int, str, None]) -> Optional[int]:
    if chain_id is None:
        return None
    if isinstance(chain_id, bool):
        raise ConfigurationError.invalid("chain_id", "must be an integer or numeric string")
    if isinstance(chain_id, int):
        return chain_id
    if isinstance(chain_id, str):
        text = chain_id.strip()
        try:
            return int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError:
            pass
    raise ConfigurationError.invalid("chain_id", f"not a number: {chain_id!r}")


# camelCase keys accepted when a plain mapping is passed to from_mapping()
_MAPPING_ALIASES = {
    "hostUrl": "host_url",
    "maxAttempts": "max_attempts",
    "attemptDelay": "attempt_delay",
    "chainId": "chain_id",
    "requestTimeout": "request_timeout",
    "replayProtection": "replay_protection",
}


@dataclass(frozen=True)
class RskConfig:
    """
    Node connection configuration, immutable once built.

    Attributes:
        host_url: Node URL; http:// is prepended when no scheme is given
        max_attempts: Attempts per remote call when the node is unreachable (>= 1)
        attempt_delay: Milliseconds to wait between attempts (>= 0)
        chain_id: Chain id used when signing; int or numeric string
        request_timeout: HTTP timeout in seconds for each request
        replay_protection: Embed chain_id in signatures (EIP-155)

    Usage:
        config = RskConfig(host_url="localhost:4444", chain_id=33, max_attempts=3)
        config.host_url  # 'http://localhost:4444'
    """
    host_url: str
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    attempt_delay: float = DEFAULT_ATTEMPT_DELAY_MS
    chain_id: Optional[int] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    replay_protection: bool = False

    def __post_init__(self):
        if self.host_url is None:
            raise ConfigurationError.missing("host_url")
        if not isinstance(self.host_url, str) or not self.host_url.strip():
            raise ConfigurationError.invalid("host_url", "must be a non-empty string")
        object.__setattr__(self, "host_url", normalize_host_url(self.host_url.strip()))

        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ConfigurationError.invalid("max_attempts", "must be an integer")
        if self.max_attempts < 1:
            raise ConfigurationError.invalid(
                "max_attempts", f"must be at least 1, got {self.max_attempts}"
            )

        if isinstance(self.attempt_delay, bool) or not isinstance(self.attempt_delay, (int, float)):
            raise ConfigurationError.invalid("attempt_delay", "must be a number of milliseconds")
        if self.attempt_delay < 0:
            raise ConfigurationError.invalid(
                "attempt_delay", f"must not be negative, got {self.attempt_delay}"
            )

        if isinstance(self.request_timeout, bool) or not isinstance(self.request_timeout, (int, float)):
            raise ConfigurationError.invalid("request_timeout", "must be a number of seconds")
        if self.request_timeout <= 0:
            raise ConfigurationError.invalid(
                "request_timeout", f"must be positive, got {self.request_timeout}"
            )

        object.__setattr__(self, "chain_id", _normalize_chain_id(self.chain_id))

    @property
    def attempt_delay_seconds(self) -> float:
        return self.attempt_delay / 1000

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "RskConfig":
        """Build from a dict, accepting either snake_case or camelCase keys"""
        kwargs = {}
        for key, value in values.items():
            name = _MAPPING_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ConfigurationError.invalid(key, "unknown configuration key")
            kwargs[name] = value
        if "host_url" not in kwargs:
            raise ConfigurationError.missing("host_url")
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> "RskConfig":
        """
        Load node configuration from environment variables.

        Environment variables:
            RSK_HOST_URL: Node URL (default: http://localhost:4444)
            RSK_MAX_ATTEMPTS: Attempts per call on connection errors (default: 1)
            RSK_ATTEMPT_DELAY_MS: Delay between attempts in ms (default: 1000)
            RSK_CHAIN_ID: Chain id for signing (default: unset)
            RSK_REQUEST_TIMEOUT: HTTP timeout in seconds (default: 30)
            RSK_REPLAY_PROTECTION: Sign with EIP-155 (default: false)
        """
        _load_env_file()
        return cls(
            host_url=_get_env("RSK_HOST_URL", DEFAULT_HOST_URL),
            max_attempts=_get_env_int("RSK_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            attempt_delay=_get_env_float("RSK_ATTEMPT_DELAY_MS", DEFAULT_ATTEMPT_DELAY_MS),
            chain_id=_get_env("RSK_CHAIN_ID", None) or None,
            request_timeout=_get_env_float("RSK_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            replay_protection=_get_env_bool("RSK_REPLAY_PROTECTION", False),
        )


def _get_default_log_path() -> str:
    """Get default log file path under rsk_transaction_helper/log/ with UTC timestamp"""
    from datetime import datetime, timezone
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_dir = Path(__file__).parent / "log"
    return str(log_dir / f"rsk_transaction_helper_{timestamp}.log")


@dataclass
class LoggingConfig:
    """
    Logging configuration with optional file output.

    File logging is off unless LOG_FILE is set (test harnesses usually only
    want console output).

    Environment variables:
        LOG_FILE: Path to log file (empty disables file output)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: Custom log format string
        LOG_CONSOLE: Enable console output (default: true)
        LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
        LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", ""))

    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))

    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))

    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))

    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))  # 10MB
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        """Get numeric log level"""
        return getattr(logging, self.log_level.upper(), logging.INFO)


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "rsk_transaction_helper",
) -> logging.Logger:
    """
    Set up logging based on configuration.

    Creates handlers for file and/or console output with optional rotation.
    The log file directory is created automatically if it doesn't exist.

    Args:
        log_config: Logging configuration (read from environment if None)
        logger_name: Name of the logger to configure

    Returns:
        Configured logger instance

    Example:
        from rsk_transaction_helper.config import LoggingConfig, setup_logging
        logger = setup_logging(LoggingConfig(log_level="DEBUG", console_output=True))
    """
    if log_config is None:
        log_config = LoggingConfig()

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    # Close before removing so file handles are released on reconfiguration
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)

    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        log_path = Path(log_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding='utf-8',
        )
        file_handler.setLevel(log_config.level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if log_config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_config.level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    for handler in handlers:
        logger.addHandler(handler)

    if log_config.log_file:
        logger.info(f"Logging initialized: file={log_config.log_file}, level={log_config.log_level}")

    return logger


def enable_file_logging(
    log_file: Optional[str] = None,
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """
    Quick setup for file logging.

    Args:
        log_file: Path to log file (defaults to rsk_transaction_helper/log/<timestamp>.log)
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        console: Also output to console
    """
    log_config = LoggingConfig(
        log_file=log_file or _get_default_log_path(),
        log_level=level,
        console_output=console,
    )
    return setup_logging(log_config)
