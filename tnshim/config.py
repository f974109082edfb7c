"""
TN Configuration Management

Handles loading and validation of shim configuration from a TOML file,
with environment overrides:

    TN_SHIM_SOCKET  - socket path
    TN_LOG_LEVEL    - log level
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import toml

from . import MAX_ATTACHMENT_SIZE
from .ipc.server import DEFAULT_SOCKET_PATH, MAX_REQUEST_SIZE


# Default configuration path
DEFAULT_CONFIG_PATH = Path("~/.config/tn/config.toml").expanduser()

# Environment variables
ENV_SOCKET = "TN_SHIM_SOCKET"
ENV_LOG_LEVEL = "TN_LOG_LEVEL"

SINK_TYPES = ("desktop", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data[name]
    if not isinstance(section, dict):
        raise ValueError(f"[{name}] must be a table, got {type(section).__name__}")
    return section


@dataclass
class SinkConfig:
    """Notification sink configuration."""
    type: str = "desktop"
    app_name: str = "tn"
    delivery_delay: float = 0.1  # seconds


@dataclass
class AttachmentConfig:
    """Attachment handling configuration."""
    max_bytes: int = MAX_ATTACHMENT_SIZE
    fetch_timeout: float = 30.0  # seconds
    download_dir: Optional[Path] = None


@dataclass
class ServerConfig:
    """Socket server configuration."""
    max_request_size: int = MAX_REQUEST_SIZE
    connection_timeout: Optional[float] = None  # seconds, None = block


@dataclass
class Config:
    """
    Complete shim configuration.
    """
    sink: SinkConfig = field(default_factory=SinkConfig)
    attachments: AttachmentConfig = field(default_factory=AttachmentConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    # Paths
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)
    socket_path: Path = field(default_factory=lambda: DEFAULT_SOCKET_PATH)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> 'Config':
        """
        Load configuration from file and environment.

        Args:
            config_path: Path to config file (default: ~/.config/tn/config.toml)
            environ: Environment mapping (default: os.environ)

        Returns:
            Loaded configuration

        Raises:
            ValueError: If the file exists but cannot be parsed
        """
        path = config_path or DEFAULT_CONFIG_PATH
        config = cls()
        config.config_path = path

        if path.exists():
            try:
                data = toml.load(path)
            except (toml.TomlDecodeError, OSError) as e:
                raise ValueError(f"Cannot read config {path}: {e}")
            try:
                config._apply_dict(data)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid config {path}: {e}")

        config._apply_env(os.environ if environ is None else environ)
        return config

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary data to config."""
        if "socket_path" in data:
            self.socket_path = Path(data["socket_path"]).expanduser()
        if "log_level" in data:
            self.log_level = str(data["log_level"]).upper()
        if "log_file" in data:
            self.log_file = Path(data["log_file"]).expanduser()

        if "sink" in data:
            s = _section(data, "sink")
            if "type" in s:
                self.sink.type = str(s["type"])
            if "app_name" in s:
                self.sink.app_name = str(s["app_name"])
            if "delivery_delay" in s:
                self.sink.delivery_delay = float(s["delivery_delay"])

        if "attachments" in data:
            a = _section(data, "attachments")
            if "max_bytes" in a:
                self.attachments.max_bytes = int(a["max_bytes"])
            if "fetch_timeout" in a:
                self.attachments.fetch_timeout = float(a["fetch_timeout"])
            if "download_dir" in a:
                self.attachments.download_dir = Path(a["download_dir"]).expanduser()

        if "server" in data:
            s = _section(data, "server")
            if "max_request_size" in s:
                self.server.max_request_size = int(s["max_request_size"])
            if "connection_timeout" in s:
                self.server.connection_timeout = float(s["connection_timeout"])

    def _apply_env(self, environ: Mapping[str, str]) -> None:
        """Apply environment overrides."""
        if environ.get(ENV_SOCKET):
            self.socket_path = Path(environ[ENV_SOCKET]).expanduser()
        if environ.get(ENV_LOG_LEVEL):
            self.log_level = environ[ENV_LOG_LEVEL].upper()

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.sink.type not in SINK_TYPES:
            raise ValueError(f"Invalid sink type: {self.sink.type}")

        if self.sink.delivery_delay < 0:
            raise ValueError(f"Invalid delivery delay: {self.sink.delivery_delay}")

        if self.attachments.max_bytes <= 0:
            raise ValueError(f"Invalid attachment limit: {self.attachments.max_bytes}")

        if self.attachments.fetch_timeout <= 0:
            raise ValueError(f"Invalid fetch timeout: {self.attachments.fetch_timeout}")

        if self.server.max_request_size <= 0:
            raise ValueError(f"Invalid max request size: {self.server.max_request_size}")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)
