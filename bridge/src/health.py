"""
Health file writer for the bridge daemon.

Writes a JSON health file at a configurable path with three fields:
- last_poll_ts: ISO timestamp of the most recent poll cycle, successful or not.
- last_publish_ts: ISO timestamp of the most recent published reading.
- consecutive_failures: Number of poll cycles that failed in a row.

The file is rewritten on every state change, providing a simple liveness
signal that a Docker HEALTHCHECK or external monitor can inspect.

CHANGELOG:
- 2026-09-15: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes bridge health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_poll_ts: str | None = None
        self._last_publish_ts: str | None = None
        self._consecutive_failures: int = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def record_success(self) -> None:
        """Record a cycle that published a reading and write health file."""
        now = datetime.now(tz=UTC).isoformat()
        self._last_poll_ts = now
        self._last_publish_ts = now
        self._consecutive_failures = 0
        self._write()

    def record_failure(self) -> None:
        """Record a cycle that published nothing and write health file."""
        self._last_poll_ts = datetime.now(tz=UTC).isoformat()
        self._consecutive_failures += 1
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_poll_ts": self._last_poll_ts,
            "last_publish_ts": self._last_publish_ts,
            "consecutive_failures": self._consecutive_failures,
        }
        self.path.write_text(json.dumps(data))
