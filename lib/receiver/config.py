"""Configuration management for the receiver telnet bridge."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lib.receiver.connection import (
    DEFAULT_DRAIN_TIMEOUT,
    DEFAULT_MAX_DRAIN_FRAMES,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
)


class ReceiverDeviceConfig(BaseModel):
    """Configuration for the receiver."""

    host: str | None = None
    port: int = DEFAULT_PORT
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    drain_timeout: float = Field(default=DEFAULT_DRAIN_TIMEOUT, gt=0)
    max_drain_frames: int = Field(default=DEFAULT_MAX_DRAIN_FRAMES, gt=0)
    introspect: bool = True


class ReceiverServiceConfig(BaseModel):
    """Configuration for the long-running service and its API."""

    health_check_interval: float = 30.0
    health_check_timeout: float = 5.0
    health_check_command: str = "Main.Model?"
    reconnect_delay: float = 2.0
    api_host: str = "0.0.0.0"
    api_port: int = 8002


class ReceiverConfig(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_prefix="RECEIVER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    device: ReceiverDeviceConfig = Field(default_factory=ReceiverDeviceConfig)
    service: ReceiverServiceConfig = Field(default_factory=ReceiverServiceConfig)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Enable JSON logging")
    log_file: str | None = Field(default=None, description="Log file path")

    @classmethod
    def load_from_yaml(cls, path: str | Path) -> "ReceiverConfig":
        """Load configuration from YAML file.

        Settings may sit at the top level or under a ``receiver:`` section.
        Values from the file take precedence over environment variables.

        Parameters
        ----------
        path : str | Path
            Path to YAML file

        Returns
        -------
        ReceiverConfig
            Loaded configuration
        """
        yaml_path = Path(path)
        if not yaml_path.exists():
            # Return defaults if file doesn't exist
            return cls()

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        receiver_data = data.get("receiver") or data

        return cls(**receiver_data)


def load_config(config_file: str | Path | None = None) -> ReceiverConfig:
    """Load configuration from file or environment.

    Parameters
    ----------
    config_file : str | Path | None, optional
        Path to config file, by default None (environment only)

    Returns
    -------
    ReceiverConfig
        Loaded configuration
    """
    if config_file:
        return ReceiverConfig.load_from_yaml(config_file)

    return ReceiverConfig()
