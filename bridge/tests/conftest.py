"""
Shared test fixtures for bridge daemon tests.

Provides environment variable fixtures for BridgeSettings configuration
tests and a builder for synthetic latest-snapshot replies.  All bridge env
vars are cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-09-16: Add snapshot builder fixture (STORY-005)
- 2026-09-14: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Sequence

import pytest

# All BridgeSettings environment variable names, used for cleanup.
_ALL_BRIDGE_ENV_VARS = (
    "BLNET_HOST",
    "BLNET_PORT",
    "RESPONSE_LENGTH",
    "FRAME_SIZE",
    "READ_TIMEOUT_S",
    "MAX_RETRIES",
    "POLL_INTERVAL_S",
    "PUBLISH_HOST",
    "PUBLISH_PORT",
    "HEALTH_PATH",
    "LOG_LEVEL",
)

# Analog fields used by default_snapshot: collector 61.2 C, tank bottom -5.0 C,
# tank top 55.0 C, circulation 100 (volume tag, 25 * 4), return flow -1.5
# (RAS tag), plus an unused sixth channel.
DEFAULT_ANALOG: tuple[int, ...] = (0x2264, 0xAFCE, 0x2226, 0x3019, 0xF1F1, 0x23E7)


@pytest.fixture(autouse=True)
def _clean_bridge_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all bridge env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_BRIDGE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required and optional environment variables for BridgeSettings.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "BLNET_HOST": "192.168.90.151",
        "BLNET_PORT": "40001",
        "RESPONSE_LENGTH": "57",
        "FRAME_SIZE": "65",
        "READ_TIMEOUT_S": "2.5",
        "MAX_RETRIES": "5",
        "POLL_INTERVAL_S": "30",
        "PUBLISH_HOST": "192.168.90.55",
        "PUBLISH_PORT": "7001",
        "HEALTH_PATH": "/tmp/bridge-health.json",
        "LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables (no optional ones).

    Optional variables should fall back to their defaults.
    """
    env = {
        "BLNET_HOST": "10.0.0.50",
        "PUBLISH_HOST": "10.0.0.60",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


def _build_snapshot(
    analog: Sequence[int] = DEFAULT_ANALOG,
    *,
    power: int = 0x00001400,
    kwh: int = 3456,
    mwh: int = 12,
    header: int = 0x80,
    length: int = 55,
    valid_checksum: bool = True,
) -> bytes:
    """Build a latest-snapshot reply with the given raw field values.

    The trailing byte is the checksum of everything before it unless
    *valid_checksum* is False, in which case it is off by one.
    """
    buf = bytearray(length)
    buf[0] = header
    struct.pack_into("<6H", buf, 1, *analog)
    struct.pack_into("<I", buf, 34, power)
    struct.pack_into("<H", buf, 38, kwh)
    struct.pack_into("<H", buf, 40, mwh)
    checksum = sum(buf[:-1]) % 256
    buf[-1] = checksum if valid_checksum else (checksum + 1) % 256
    return bytes(buf)


@pytest.fixture()
def build_snapshot() -> Callable[..., bytes]:
    """Return the snapshot builder so tests can vary individual fields."""
    return _build_snapshot


@pytest.fixture()
def default_snapshot() -> bytes:
    """A valid 55-byte snapshot built from DEFAULT_ANALOG and default fields."""
    return _build_snapshot()
