"""Configuration models for the Yeelight LAN client.

Configuration is built explicitly and handed to each component at creation
time. Environment variables and YAML files are only convenience sources for
building a ClientConfig; nothing here mutates process-wide state.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field

from yeelight_lan.const import (
    MAX_PENDING_REQUESTS,
    env_flag,
    env_float,
    env_int,
    env_str,
)

__all__ = [
    "ClientConfig",
    "LoggingConfig",
    "TimeoutConfig",
]

LogFormat = Literal["json", "human", "both"]


class LoggingConfig(BaseModel):
    """Logger settings passed to every component that logs."""

    model_config = ConfigDict(frozen=True)

    debug: bool = False
    log_format: LogFormat = "human"
    json_file: str | None = None
    human_output: str = "stderr"  # "stdout", "stderr", or a file path

    @property
    def level(self) -> int:
        """Effective log level: everything when debugging, warnings and up otherwise."""
        return logging.DEBUG if self.debug else logging.WARNING

    @classmethod
    def from_env(cls) -> LoggingConfig:
        """Build logging settings from YEELIGHT_* environment variables."""
        log_format = env_str("YEELIGHT_LOG_FORMAT", "human") or "human"
        if log_format not in ("json", "human", "both"):
            log_format = "human"
        return cls(
            debug=env_flag("YEELIGHT_DEBUG"),
            log_format=cast("LogFormat", log_format),
            json_file=env_str("YEELIGHT_LOG_JSON_FILE"),
            human_output=env_str("YEELIGHT_LOG_HUMAN_OUTPUT", "stderr") or "stderr",
        )


class TimeoutConfig(BaseModel):
    """Timeouts in seconds for connection, request and discovery phases."""

    model_config = ConfigDict(frozen=True)

    connect_timeout: float = Field(default=5.0, gt=0)
    io_timeout: float = Field(default=5.0, gt=0)
    request_timeout: float = Field(default=5.0, gt=0)
    discovery_timeout: float = Field(default=5.0, gt=0)
    health_check_timeout: float = Field(default=1.0, gt=0)


class ClientConfig(BaseModel):
    """Top-level client configuration."""

    model_config = ConfigDict(frozen=True)

    logging: LoggingConfig = LoggingConfig()
    timeouts: TimeoutConfig = TimeoutConfig()
    max_pending_requests: int = Field(default=MAX_PENDING_REQUESTS, gt=0)
    read_chunk_size: int = Field(default=1024, gt=0)

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build a configuration from YEELIGHT_* environment variables."""
        defaults = TimeoutConfig()
        return cls(
            logging=LoggingConfig.from_env(),
            timeouts=TimeoutConfig(
                connect_timeout=env_float("YEELIGHT_CONNECT_TIMEOUT", defaults.connect_timeout),
                io_timeout=env_float("YEELIGHT_IO_TIMEOUT", defaults.io_timeout),
                request_timeout=env_float("YEELIGHT_REQUEST_TIMEOUT", defaults.request_timeout),
                discovery_timeout=env_float("YEELIGHT_DISCOVERY_TIMEOUT", defaults.discovery_timeout),
                health_check_timeout=env_float("YEELIGHT_HEALTH_CHECK_TIMEOUT", defaults.health_check_timeout),
            ),
            max_pending_requests=env_int("YEELIGHT_MAX_PENDING_REQUESTS", MAX_PENDING_REQUESTS),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> ClientConfig:
        """Load a configuration from a YAML file.

        Args:
            path: YAML file with optional "logging" and "timeouts" sections

        Returns:
            Validated ClientConfig (missing keys take their defaults)

        """
        with Path(path).open(encoding="utf-8") as f:
            data = cast("dict[str, object] | None", yaml.safe_load(f))
        return cls.model_validate(data or {})
