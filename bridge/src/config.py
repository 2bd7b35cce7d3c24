"""
Bridge daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded IPs or ports beyond protocol defaults.

CHANGELOG:
- 2026-09-21: Add LOG_LEVEL and HEALTH_PATH
- 2026-09-14: Initial creation (STORY-001)

TODO:
- None
"""

import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from bridge.src import protocol
from bridge.src.query import BlnetConnection


class BridgeSettings(BaseSettings):
    """Bridge daemon configuration for BL-NET-to-UDP forwarding.

    All values are loaded from environment variables. Required variables
    must be set; optional variables have sensible defaults.

    Attributes:
        blnet_host: BL-NET IP address / hostname on local LAN.
        blnet_port: BL-NET bootloader TCP port (default 40000).
        response_length: Expected latest-snapshot reply length in bytes.
        frame_size: Largest reply frame the device declares.
        read_timeout_s: Connect and per-read timeout in seconds.
        max_retries: Snapshot requests allowed while the device is not ready.
        poll_interval_s: Seconds between poll cycles.
        publish_host: Home-automation controller receiving UDP readings.
        publish_port: UDP port on the controller (default 7000).
        health_path: Health JSON file path; empty disables the file.
        log_level: Root logging level name.
    """

    blnet_host: str
    blnet_port: int = protocol.DEFAULT_PORT
    response_length: int = protocol.SNAPSHOT_LENGTH
    frame_size: int = protocol.FRAME_SIZE
    read_timeout_s: float = 10.0
    max_retries: int = protocol.MAX_RETRIES
    poll_interval_s: int = 10
    publish_host: str
    publish_port: int = 7000
    health_path: str = "/data/health.json"
    log_level: str = "INFO"

    @field_validator("blnet_port", "publish_port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate TCP/UDP ports are in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("ports must be between 1 and 65535")
        return v

    @field_validator("frame_size")
    @classmethod
    def frame_size_must_be_positive(cls, v: int) -> int:
        """Validate the declared frame size is at least one byte."""
        if v < 1:
            raise ValueError("FRAME_SIZE must be >= 1")
        return v

    @field_validator("response_length")
    @classmethod
    def response_length_must_cover_snapshot(cls, v: int) -> int:
        """Validate the reply length covers every decoded snapshot field."""
        if v < protocol.MIN_SNAPSHOT_LENGTH:
            raise ValueError(
                f"RESPONSE_LENGTH must be >= {protocol.MIN_SNAPSHOT_LENGTH} "
                "to cover the snapshot field layout"
            )
        return v

    @field_validator("read_timeout_s")
    @classmethod
    def read_timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("READ_TIMEOUT_S must be > 0")
        return v

    @field_validator("max_retries")
    @classmethod
    def max_retries_must_be_valid(cls, v: int) -> int:
        """Validate retry budget is between 1 and 100."""
        if v < 1 or v > 100:
            raise ValueError("MAX_RETRIES must be >= 1 and <= 100")
        return v

    @field_validator("poll_interval_s")
    @classmethod
    def poll_interval_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("POLL_INTERVAL_S must be >= 1")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Validate and normalise the logging level name."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL must be a logging level name, got '{v}'")
        return level

    @model_validator(mode="after")
    def _response_fits_frame(self) -> "BridgeSettings":
        """Reject a reply length larger than the declared frame size."""
        if self.response_length > self.frame_size:
            raise ValueError(
                f"RESPONSE_LENGTH ({self.response_length}) must not exceed "
                f"FRAME_SIZE ({self.frame_size})"
            )
        return self

    def connection(self) -> BlnetConnection:
        """Build the connection descriptor for one poll cycle."""
        return BlnetConnection(
            host=self.blnet_host,
            port=self.blnet_port,
            response_length=self.response_length,
            frame_size=self.frame_size,
        )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
