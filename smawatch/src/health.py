"""
Health file writer for the watcher.

Writes a JSON health file at a configurable path with four fields:
- last_tick_ts: ISO timestamp of the last recorded tick (a flush tick or a
  connection change).
- last_flush_ts: ISO timestamp of the most recent successful sink write.
- connected: Map of inverter slot name to its connection state.
- gateway_enabled: Whether the gateway device was resolved at startup.

The file is replaced (write to a sibling temp file, then rename) on every
state change, so a HEALTHCHECK never reads a half-written document.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes watcher health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_tick_ts: str | None = None
        self._last_flush_ts: str | None = None
        self._connected: dict[str, bool] = {}
        self._gateway_enabled: bool = False

    def record_tick(self, connected: dict[str, bool]) -> None:
        """Record a tick with the per-slot connection states."""
        self._last_tick_ts = datetime.now(tz=UTC).isoformat()
        self._connected = dict(connected)
        self._write()

    def record_flush(self) -> None:
        """Record a successful sink write."""
        self._last_flush_ts = datetime.now(tz=UTC).isoformat()
        self._write()

    def set_gateway_enabled(self, enabled: bool) -> None:
        """Record whether the gateway path is active."""
        self._gateway_enabled = enabled
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_tick_ts": self._last_tick_ts,
            "last_flush_ts": self._last_flush_ts,
            "connected": self._connected,
            "gateway_enabled": self._gateway_enabled,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data))
        os.replace(tmp, self.path)
